import aiohttp
import asyncio
import logging
from typing import Optional, List, Dict, Any, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Ignored:
    """A failure that was deliberately not raised to the caller"""
    reason: str

FetchResult = Union[List[Dict[str, Any]], Ignored]

@dataclass
class LiveDataConfig:
    """Configuration for live data requests"""
    timeout: int = 10  # Request timeout

def extract_server_list(payload: Any) -> Optional[List[Any]]:
    """
    Find the server list in a live data payload

    Accepts a bare list, or an object carrying the list under
    `servers` or `data` (in that order of preference).
    """
    if isinstance(payload, dict):
        for key in ("servers", "data"):
            value = payload.get(key)
            # An empty list still counts as present
            if value or isinstance(value, (list, dict)):
                payload = value
                break
    if isinstance(payload, list):
        return payload
    return None

class LiveDataClient:
    """Client for reading server fragments from an operator-supplied URL"""

    def __init__(self, config: Optional[LiveDataConfig] = None, log: Optional[logging.Logger] = None):
        self.config = config or LiveDataConfig()
        self.session: Optional[aiohttp.ClientSession] = None
        self.log = log or logger

    async def __aenter__(self):
        """Async context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.disconnect()

    async def connect(self):
        """Initialize HTTP session"""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)

    async def disconnect(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch_servers(self, url: str) -> FetchResult:
        """
        Fetch server fragments from a live data URL

        Returns:
            The list of fragments, or Ignored with the reason the read failed
        """
        if not self.session:
            await self.connect()

        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    return Ignored(f"HTTP {response.status} from {url}")
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    return Ignored(f"Non-JSON body from {url}: {e}")
        except asyncio.TimeoutError:
            return Ignored(f"Request timeout: {url}")
        except aiohttp.ClientError as e:
            return Ignored(f"Request error: {e}")

        servers = extract_server_list(payload)
        if servers is None:
            return Ignored(f"Unexpected payload shape from {url}")

        self.log.info(f"Fetched {len(servers)} live server fragment(s)")
        return servers
