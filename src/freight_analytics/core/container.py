"""Dependency injection container for building fully-wired reporting services."""

from __future__ import annotations

import time
from datetime import date
from typing import Callable, Mapping, Optional

import httpx

from freight_analytics.analytics.aggregator import Aggregator
from freight_analytics.analytics.exporter import Exporter
from freight_analytics.analytics.ranker import ComparisonRanker
from freight_analytics.cache.memory_store import InMemoryStore
from freight_analytics.cache.record_cache import RecordCache
from freight_analytics.cache.sqlite_store import SQLiteStore
from freight_analytics.core.config import EngineConfig
from freight_analytics.core.service import ReportingService
from freight_analytics.domain.interfaces import IKeyValueStore
from freight_analytics.orchestration.orchestrator import FetchOrchestrator
from freight_analytics.sources.endpoints import DEFAULT_ENDPOINTS, EndpointSpec
from freight_analytics.sources.http_source import HttpRemoteSource


class DIContainer:
    """Factory helpers that assemble services with default wiring."""

    @staticmethod
    def create_service(
        *,
        access_token: str,
        entity: str = "quotes",
        config: Optional[EngineConfig] = None,
        http_client: Optional[httpx.Client] = None,
        store: Optional[IKeyValueStore] = None,
        endpoints: Optional[Mapping[str, EndpointSpec]] = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
    ) -> ReportingService:
        cfg = config or EngineConfig.from_env()
        endpoint = DIContainer._resolve_endpoint(entity, endpoints)
        kv_store = store or DIContainer._build_store(cfg)
        short_cache = RecordCache(kv_store, cfg.short_ttl_seconds, clock=clock)
        long_cache = RecordCache(kv_store, cfg.long_ttl_seconds, clock=clock)

        client = http_client or DIContainer._build_http_client(cfg)
        source = HttpRemoteSource(
            client,
            endpoint,
            base_url=cfg.base_url,
            access_token=access_token,
            timeout=cfg.timeout_seconds,
        )
        orchestrator = FetchOrchestrator(
            source,
            entity=endpoint.entity,
            query_cache=short_cache,
            reference_cache=long_cache,
            pattern=endpoint.pattern,
            page_size=cfg.page_size,
            max_pages=cfg.max_pages,
            max_workers=cfg.max_workers,
        )
        return ReportingService(
            orchestrator,
            comparison_cache=short_cache,
            stats_cache=long_cache,
            aggregator=Aggregator(),
            ranker=ComparisonRanker(),
            exporter=Exporter(),
            today=today,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _resolve_endpoint(
        entity: str, endpoints: Optional[Mapping[str, EndpointSpec]]
    ) -> EndpointSpec:
        mapping = endpoints or DEFAULT_ENDPOINTS
        try:
            return mapping[entity.lower()]
        except KeyError as exc:
            raise ValueError(
                f"Unknown entity '{entity}'. Available: {sorted(mapping)}"
            ) from exc

    @staticmethod
    def _build_store(config: EngineConfig) -> IKeyValueStore:
        if config.cache_path:
            return SQLiteStore(config.cache_path)
        return InMemoryStore()

    @staticmethod
    def _build_http_client(config: EngineConfig) -> httpx.Client:
        return httpx.Client(timeout=config.timeout_seconds)
