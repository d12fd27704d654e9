# Overview: Client-side half of the storefront: state store, device storage, API client and page flows.

from .storage import MemoryStorage, FileStorage
from .store import ClientStore, StoreState
from .api import StorefrontClient, ApiError
from .checkout import CheckoutFlow, CheckoutResult, CheckoutStep
from .session import rehydrate, RehydrateResult
from .dashboard import load_dashboard, DashboardResult

__all__ = [
    "MemoryStorage",
    "FileStorage",
    "ClientStore",
    "StoreState",
    "StorefrontClient",
    "ApiError",
    "CheckoutFlow",
    "CheckoutResult",
    "CheckoutStep",
    "rehydrate",
    "RehydrateResult",
    "load_dashboard",
    "DashboardResult",
]
