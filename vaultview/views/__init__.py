from vaultview.views.view_manager import ViewManager
from vaultview.views.view_store import ViewStore

__all__ = ["ViewManager", "ViewStore"]
