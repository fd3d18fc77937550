from fastapi import FastAPI, HTTPException, Request, Depends, status
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional
import logging

from models import (
    ServerRecord, ServerListResponse, FeaturedResponse, RefreshResponse,
    AnalyticsSummary, IntegrationsConfig, IntegrationsUpdateRequest,
    CatalogUpdateRequest, UserInfo, UserRecord, SignupRequest, LoginRequest,
    ProfileUpdateRequest, UsernameChangeRequest, PasswordChangeRequest,
    DeleteAccountRequest, HealthResponse
)
from analytics import featured, live_players, summarize, to_rows
from catalog import CatalogStore
from database import db
from config import settings
from filters import ALL, filter_servers
from live_data_client import LiveDataClient, LiveDataConfig
from overlay_cache import LiveOverlayCache
from reconcile import ServerDirectory
from users import UserRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info("Starting server listing...")
    await db.init_db()

    client = LiveDataClient(LiveDataConfig(timeout=settings.live_data_timeout))
    overlay = LiveOverlayCache(client.fetch_servers, ttl=settings.live_data_ttl)
    catalog = CatalogStore(db)
    app.state.directory = ServerDirectory(catalog, overlay)
    app.state.users = UserRegistry(db, settings.admin_usernames)

    # Seed or migrate the catalog before the first request
    await catalog.load()

    refresh_task = asyncio.create_task(periodic_refresh(app.state.directory))

    logger.info(f"Server listing started on {settings.host}:{settings.port}")
    logger.info(f"Live data TTL: {settings.live_data_ttl}s")
    logger.info(f"Refresh interval: {settings.refresh_interval}s")

    yield

    # Shutdown
    logger.info("Shutting down server listing...")
    refresh_task.cancel()
    try:
        await refresh_task
    except asyncio.CancelledError:
        pass
    await client.disconnect()

app = FastAPI(
    title="Game Server Listing",
    description="Server catalog with live data overlay and analytics",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

async def periodic_refresh(directory: ServerDirectory):
    """Periodically force the live overlay stale and refetch it"""
    while True:
        try:
            await asyncio.sleep(settings.refresh_interval)
            await directory.refresh(force=True)
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Error in refresh task: {e}")

def get_directory(request: Request) -> ServerDirectory:
    return request.app.state.directory

def get_users(request: Request) -> UserRegistry:
    return request.app.state.users

async def require_admin(users: UserRegistry = Depends(get_users)) -> UserRecord:
    """Only admin sessions may manage the catalog and integrations"""
    user = await users.current_user()
    if user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    return user

def user_info(user: UserRecord) -> UserInfo:
    return UserInfo(
        username=user.username,
        role=user.role,
        avatar_url=user.avatar_url,
        banner_url=user.banner_url,
        bio=user.bio
    )

@app.get("/", response_model=HealthResponse)
@app.get("/health", response_model=HealthResponse)
async def health_check(directory: ServerDirectory = Depends(get_directory)):
    """Health check endpoint"""
    servers = await directory.catalog.load()
    return HealthResponse(
        status="ok",
        timestamp=time.time(),
        servers=len(servers)
    )

@app.get("/servers", response_model=ServerListResponse)
async def list_servers(
    q: str = "",
    region: str = ALL,
    game: str = ALL,
    directory: ServerDirectory = Depends(get_directory)
):
    """Filtered server table with analytics over the whole effective list"""
    servers = await directory.effective_servers()
    filtered = filter_servers(servers, q, region, game)

    return ServerListResponse(
        servers=to_rows(filtered),
        total=len(filtered),
        server_count=len(servers),
        live_players=live_players(servers),
        analytics=summarize(servers),
        timestamp=time.time()
    )

@app.get("/servers/featured", response_model=FeaturedResponse)
async def featured_servers(directory: ServerDirectory = Depends(get_directory)):
    """Home page view: the leading servers and their headline numbers"""
    servers = await directory.effective_servers()
    view = featured(servers, settings.featured_count)
    return FeaturedResponse(
        servers=to_rows(view["servers"]),
        server_count=view["server_count"],
        avg_latency_ms=view["avg_latency_ms"],
        total_peak=view["total_peak"],
        timestamp=time.time()
    )

@app.get("/servers/analytics", response_model=AnalyticsSummary)
async def server_analytics(
    q: str = "",
    region: str = ALL,
    game: str = ALL,
    directory: ServerDirectory = Depends(get_directory)
):
    """Analytics over the effective servers, optionally filtered"""
    servers = await directory.effective_servers()
    return summarize(filter_servers(servers, q, region, game))

@app.post("/servers/refresh", response_model=RefreshResponse)
async def refresh_servers(directory: ServerDirectory = Depends(get_directory)):
    """Refresh live data now, regardless of the TTL"""
    await directory.refresh(force=True)
    servers = await directory.effective_servers(refresh=False)
    return RefreshResponse(
        servers=servers,
        last_fetch=directory.overlay.last_fetch,
        overlay_entries=len(directory.overlay.entries)
    )

@app.get("/admin/servers", response_model=list[ServerRecord])
async def admin_servers(
    admin: UserRecord = Depends(require_admin),
    directory: ServerDirectory = Depends(get_directory)
):
    return await directory.effective_servers()

@app.put("/admin/servers", response_model=list[ServerRecord])
async def replace_catalog(
    update: CatalogUpdateRequest,
    admin: UserRecord = Depends(require_admin),
    directory: ServerDirectory = Depends(get_directory)
):
    """Replace the server catalog"""
    await directory.catalog.save(update.servers)
    logger.info(f"Catalog replaced by {admin.username}")
    return await directory.effective_servers(refresh=False)

@app.get("/admin/servers/legacy")
async def legacy_servers(
    admin: UserRecord = Depends(require_admin),
    directory: ServerDirectory = Depends(get_directory)
):
    """The catalog in the legacy flat-list shape"""
    return await directory.catalog.legacy_servers()

@app.get("/admin/integrations", response_model=IntegrationsConfig)
async def get_integrations(
    admin: UserRecord = Depends(require_admin),
    directory: ServerDirectory = Depends(get_directory)
):
    return await directory.catalog.get_integrations()

@app.put("/admin/integrations", response_model=IntegrationsConfig)
async def save_integrations(
    update: IntegrationsUpdateRequest,
    admin: UserRecord = Depends(require_admin),
    directory: ServerDirectory = Depends(get_directory)
):
    """Save integration settings; the catalog is left as it is"""
    integrations = await directory.catalog.get_integrations()
    integrations.live_data_url = update.live_data_url
    integrations.rcon = update.rcon
    integrations.iw4madmin = update.iw4madmin
    integrations.other = update.other
    await directory.catalog.save_integrations(integrations)
    logger.info(f"Integrations saved by {admin.username}")
    return integrations

@app.post("/auth/signup", response_model=UserInfo, status_code=status.HTTP_201_CREATED)
async def signup(form: SignupRequest, users: UserRegistry = Depends(get_users)):
    user = await users.signup(form.username, form.password, form.confirm)
    return user_info(user)

@app.post("/auth/login", response_model=UserInfo)
async def login(form: LoginRequest, users: UserRegistry = Depends(get_users)):
    user = await users.login(form.username, form.password)
    return user_info(user)

@app.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(users: UserRegistry = Depends(get_users)):
    await users.logout()
    return None

@app.get("/auth/me", response_model=Optional[UserInfo])
async def current_user(users: UserRegistry = Depends(get_users)):
    user = await users.current_user()
    return user_info(user) if user else None

@app.patch("/auth/profile", response_model=UserInfo)
async def update_profile(form: ProfileUpdateRequest, users: UserRegistry = Depends(get_users)):
    user = await users.update_profile(form.bio, form.avatar_url, form.banner_url)
    return user_info(user)

@app.post("/auth/username", response_model=UserInfo)
async def change_username(form: UsernameChangeRequest, users: UserRegistry = Depends(get_users)):
    user = await users.require_user()
    updated = await users.change_username(user.username, form.new_username, form.current_password)
    return user_info(updated)

@app.post("/auth/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(form: PasswordChangeRequest, users: UserRegistry = Depends(get_users)):
    user = await users.require_user()
    await users.change_password(user.username, form.current_password, form.new_password, form.confirm_password)
    return None

@app.delete("/auth/account", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(form: DeleteAccountRequest, users: UserRegistry = Depends(get_users)):
    user = await users.require_user()
    await users.delete_account(user.username, form.password)
    return None

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info"
    )
