"""SiYuan target store adapter."""

from karakeep_sync.adapters.siyuan.client import SiYuanAPIError, SiYuanClient
from karakeep_sync.adapters.siyuan.store import Notebook, SiYuanDocumentStore

__all__ = ["Notebook", "SiYuanAPIError", "SiYuanClient", "SiYuanDocumentStore"]
