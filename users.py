"""Local-only account registry and session.

There is no network verification: accounts live in the registry slot and
the logged-in user in the session slot of the same storage.
"""
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import HTTPException
from pydantic import ValidationError

from database import Database, USER_SLOT, USERS_REGISTRY_SLOT
from models import UserRecord

logger = logging.getLogger(__name__)

DEFAULT_BANNER_URL = "https://images.pexels.com/photos/2832072/pexels-photo-2832072.jpeg"
DEFAULT_BIO = "Welcome to Rustaradise."


def normalize_username(username: str) -> str:
    return username.strip().lower()


def avatar_url_for(username: str) -> str:
    return "https://api.dicebear.com/9.x/bottts/svg?seed=" + quote(username, safe="")


class UserRegistry:
    def __init__(self, database: Database, admin_usernames: List[str]):
        self.db = database
        self.admin_usernames = [normalize_username(u) for u in admin_usernames]

    async def _registry(self) -> Dict[str, dict]:
        raw = await self.db.get_json(USERS_REGISTRY_SLOT)
        return raw if isinstance(raw, dict) else {}

    async def _save_registry(self, registry: Dict[str, dict]) -> None:
        await self.db.set_json(USERS_REGISTRY_SLOT, registry)

    async def _start_session(self, user: dict) -> None:
        session = {k: v for k, v in user.items() if k != "password"}
        await self.db.set_json(USER_SLOT, session)

    async def _verified(self, username: str, password: str) -> dict:
        registry = await self._registry()
        existing = registry.get(username)
        if not existing or existing.get("password") != password:
            raise HTTPException(status_code=401, detail="Current password is incorrect.")
        return existing

    async def current_user(self) -> Optional[UserRecord]:
        raw = await self.db.get_json(USER_SLOT)
        if not isinstance(raw, dict):
            return None
        try:
            return UserRecord.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring malformed session")
            return None

    async def signup(self, username: str, password: str, confirm: str) -> UserRecord:
        username = username.strip()
        password = password.strip()
        confirm = confirm.strip()
        if not username or not password or not confirm:
            raise HTTPException(status_code=400, detail="Fill in username, password, and confirmation.")
        if password != confirm:
            raise HTTPException(status_code=400, detail="Passwords don't match. Please try again.")

        normalized = normalize_username(username)
        registry = await self._registry()
        if normalized in registry:
            raise HTTPException(status_code=409, detail="That username is already taken. Please choose another.")

        user = UserRecord(
            username=normalized,
            password=password,
            role="admin" if normalized in self.admin_usernames else "user",
            avatar_url=avatar_url_for(normalized),
            banner_url=DEFAULT_BANNER_URL,
            bio=DEFAULT_BIO,
        )
        wire = user.model_dump(by_alias=True)
        registry[normalized] = wire
        await self._save_registry(registry)
        await self._start_session(wire)
        logger.info(f"Registered account '{normalized}' ({user.role})")
        return user

    async def login(self, username: str, password: str) -> UserRecord:
        username = username.strip()
        password = password.strip()
        if not username or not password:
            raise HTTPException(status_code=400, detail="Enter a username and password to continue.")

        registry = await self._registry()
        registered = registry.get(normalize_username(username))
        if not registered:
            raise HTTPException(status_code=404, detail="No account found with that username. Sign up first.")
        if registered.get("password") != password:
            raise HTTPException(status_code=401, detail="Incorrect password. Please try again.")

        await self._start_session(registered)
        return UserRecord.model_validate(registered)

    async def logout(self) -> None:
        await self.db.delete(USER_SLOT)

    async def require_user(self) -> UserRecord:
        user = await self.current_user()
        if user is None:
            raise HTTPException(status_code=401, detail="Not logged in.")
        return user

    async def update_profile(
        self,
        bio: Optional[str] = None,
        avatar_url: Optional[str] = None,
        banner_url: Optional[str] = None,
    ) -> UserRecord:
        user = await self.require_user()
        registry = await self._registry()
        existing = registry.get(user.username, user.model_dump(by_alias=True, exclude_none=True))
        updated = dict(existing)
        if bio is not None:
            updated["bio"] = bio.strip()
        if avatar_url is not None:
            updated["avatarUrl"] = avatar_url
        if banner_url is not None:
            updated["bannerUrl"] = banner_url

        registry[user.username] = updated
        await self._save_registry(registry)
        await self._start_session(updated)
        return UserRecord.model_validate(updated)

    async def change_username(self, old_username: str, new_username: str, current_password: str) -> UserRecord:
        if not new_username.strip() or not current_password:
            raise HTTPException(status_code=400, detail="Fill in new username and current password.")

        existing = await self._verified(old_username, current_password)
        normalized = normalize_username(new_username)
        registry = await self._registry()
        if normalized in registry:
            raise HTTPException(status_code=409, detail="That username is already taken.")

        updated = {**existing, "username": normalized}
        del registry[old_username]
        registry[normalized] = updated
        await self._save_registry(registry)
        await self._start_session(updated)
        logger.info(f"Renamed account '{old_username}' to '{normalized}'")
        return UserRecord.model_validate(updated)

    async def change_password(self, username: str, current_password: str, new_password: str, confirm_password: str) -> None:
        if not current_password or not new_password or not confirm_password:
            raise HTTPException(status_code=400, detail="Fill in all password fields.")
        if new_password != confirm_password:
            raise HTTPException(status_code=400, detail="New passwords don't match.")

        existing = await self._verified(username, current_password)
        registry = await self._registry()
        registry[username] = {**existing, "password": new_password}
        await self._save_registry(registry)

    async def delete_account(self, username: str, password: str) -> None:
        try:
            await self._verified(username, password)
        except HTTPException:
            raise HTTPException(status_code=401, detail="Incorrect password.") from None

        registry = await self._registry()
        del registry[username]
        await self._save_registry(registry)
        await self.db.delete(USER_SLOT)
        logger.info(f"Deleted account '{username}'")
