"""Wiring of the offline services around one API client."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from services.api_client import SmartRoutineApi
from services.background_sync import BackgroundSync
from services.cache_manager import CacheManager, CacheStorage, api_fetcher
from services.connectivity import ConnectivityMonitor
from services.outbox_store import OutboxStore
from services.outbox_submitter import OutboxSubmitter
from services.payloads import SessionProvider, session_from_disk
from services.push_manager import PushManager
from services.sync_service import SyncService
from services.worker import ServiceWorker
from services.write_interceptor import WriteInterceptor


@dataclass
class OfflineClient:
    api: SmartRoutineApi
    store: OutboxStore
    connectivity: ConnectivityMonitor
    background_sync: BackgroundSync
    interceptor: WriteInterceptor
    submitter: OutboxSubmitter
    sync: SyncService
    cache: CacheManager
    push: PushManager
    worker: ServiceWorker


def build_client(
    api: Optional[SmartRoutineApi] = None,
    *,
    store: Optional[OutboxStore] = None,
    cache_storage: Optional[CacheStorage] = None,
    session_provider: SessionProvider = session_from_disk,
    connectivity: Optional[ConnectivityMonitor] = None,
    background_sync: Optional[BackgroundSync] = None,
) -> OfflineClient:
    api = api or SmartRoutineApi()
    store = store or OutboxStore()
    store.initialize()
    cache_storage = cache_storage or CacheStorage(origin=api.base_url)
    cache_storage.initialize()
    connectivity = connectivity or ConnectivityMonitor(probe=api.ping)
    background_sync = background_sync or BackgroundSync()

    interceptor = WriteInterceptor(store, api, session_provider, connectivity, background_sync)
    submitter = OutboxSubmitter(store, api, session_provider, connectivity)
    sync = SyncService(submitter, connectivity, background_sync, store)
    cache = CacheManager(cache_storage, api_fetcher(api))
    push = PushManager(api)
    worker = ServiceWorker(cache, sync, push, background_sync)
    return OfflineClient(
        api=api,
        store=store,
        connectivity=connectivity,
        background_sync=background_sync,
        interceptor=interceptor,
        submitter=submitter,
        sync=sync,
        cache=cache,
        push=push,
        worker=worker,
    )


__all__ = ["OfflineClient", "build_client"]
