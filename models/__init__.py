"""ORM models exposed by the Smart Routine offline client."""
from .cached_asset import CachedAsset
from .pending_op import PendingOp

__all__ = ["CachedAsset", "PendingOp"]
