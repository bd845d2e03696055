#!/usr/bin/env python3
"""
Instagram collection client.

Every list-shaped resource (medias, comments, likes, followers, following,
tag/location feeds, direct threads) goes through one pagination engine; this
module only wires resource descriptors, endpoints and the session together.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from config_loader import ConfigLoader
from ig_endpoints import EndpointBuilder
from ig_errors import ValidationError
from ig_models import media_id_to_shortcode
from ig_outcome import Success, classify, unwrap
from ig_paging import (
    AccumulatedResult,
    CollectionRequest,
    PageFetcher,
    PageResult,
    PagingDelay,
    PaginationEngine,
)
from ig_resources import Resource, get_resource
from ig_session import DEFAULT_USER_AGENT, FileSessionStore, Session, SessionStore
from ig_transport import HttpTransport

logger = logging.getLogger("ig_collections.client")


class InstagramClient:
    def __init__(
        self,
        config_file: str = "config.json",
        transport: Any = None,
        session: Optional[Session] = None,
        session_store: Optional[SessionStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config_loader = ConfigLoader(config_file)
        self.config = self.config_loader.config.get("instagram", {})

        settings = self.config.get("settings", {})
        self.paging_time_limit = settings.get("paging_time_limit", 1800)
        self.max_comments_per_request = settings.get("max_comments_per_request", 300)
        self.max_likes_per_request = settings.get("max_likes_per_request", 300)
        self.account_medias_page_size = settings.get("account_medias_page_size", 12)

        self.transport = transport or HttpTransport(
            timeout=settings.get("timeout", 30),
            retry_attempts=settings.get("retry_attempts", 3),
            retry_delay=settings.get("retry_delay", 5),
            requests_per_minute=settings.get("requests_per_minute", 0),
            request_jitter_ratio=settings.get("request_jitter_ratio", 0.2),
            proxies=self.config_loader.get_proxy_settings(),
            sleep=sleep,
        )

        auth = self.config.get("authentication", {})
        # unset means the default agent; an empty or false value drops the header
        user_agent = auth.get("user_agent")
        if user_agent is None:
            user_agent = DEFAULT_USER_AGENT
        self.session = session or Session(
            cookies=self.config_loader.get_cookies(),
            user_agent=user_agent or None,
        )
        self.static_headers = {
            key: value
            for key, value in (auth.get("headers") or {}).items()
            if value and not str(value).startswith("YOUR_")
        }
        self.session_store = session_store or FileSessionStore(settings.get("session_cache_dir", ".ig_sessions"))

        self.endpoints = EndpointBuilder(self.config.get("endpoints", {}))
        self.engine = PaginationEngine(
            PagingDelay(
                settings.get("paging_delay_min", 1.0),
                settings.get("paging_delay_max", 3.0),
                sleep=sleep,
            ),
            clock=clock,
        )

    # -- plumbing -----------------------------------------------------------

    def _request(self, resource: Resource, variables: Dict[str, Any]) -> dict:
        spec = self.endpoints.build(resource.endpoint, variables)
        headers = self.session.headers({**self.static_headers, **spec.headers})
        response = self.transport.send(spec.method, spec.url, headers)
        outcome = classify(response.status_code, response.body, resource.shape.require_ok_status)
        if isinstance(outcome, Success):
            self.session.ingest(response.headers)
        else:
            logger.warning("%s request failed: %s", resource.name, outcome)
        return unwrap(outcome, resource.not_found_message)

    def _fetcher(self, resource: Resource, params: Dict[str, Any]) -> PageFetcher:
        def fetch(cursor: Optional[str], page_size: int) -> PageResult:
            payload = self._request(resource, {**params, "cursor": cursor, "count": page_size})
            nodes, page_info = resource.shape.decode(payload)
            return PageResult([resource.mapper(node) for node in nodes], page_info)

        return fetch

    def _request_for(self, count: int, page_size: Optional[int], delayed: bool, **options) -> CollectionRequest:
        return CollectionRequest(
            requested_count=count,
            page_size=page_size if page_size is not None else max(count, 1),
            delayed=delayed,
            **options,
        )

    # -- generic operations -------------------------------------------------

    def fetch_page(
        self,
        resource_name: str,
        params: Optional[Dict[str, Any]] = None,
        cursor: Optional[str] = None,
        page_size: int = 20,
    ) -> PageResult:
        resource = get_resource(resource_name)
        return self.engine.fetch_page(self._fetcher(resource, params or {}), cursor, page_size)

    def collect(
        self,
        resource_name: str,
        params: Optional[Dict[str, Any]],
        count: int,
        page_size: Optional[int] = None,
        delayed: bool = True,
        start_cursor: Optional[str] = None,
        cancel: Any = None,
        **options,
    ) -> AccumulatedResult:
        resource = get_resource(resource_name)
        request = self._request_for(count, page_size, delayed, start_cursor=start_cursor, **options)
        logger.info("Collect %s: count=%d page_size=%d cursor=%s",
                    resource.name, request.requested_count, request.page_size, start_cursor or "<start>")
        return self.engine.collect(
            request,
            self._fetcher(resource, params or {}),
            cancel=cancel,
            time_limit=self.paging_time_limit if delayed else None,
        )

    def collect_with_handle(
        self,
        resource_name: str,
        params: Optional[Dict[str, Any]],
        count: int,
        page_size: Optional[int] = None,
        delayed: bool = True,
        start_cursor: Optional[str] = None,
        cancel: Any = None,
        **options,
    ) -> AccumulatedResult:
        resource = get_resource(resource_name)
        request = self._request_for(count, page_size, delayed, start_cursor=start_cursor, **options)
        return self.engine.collect_with_handle(
            request,
            self._fetcher(resource, params or {}),
            cancel=cancel,
            time_limit=self.paging_time_limit if delayed else None,
        )

    def collect_all_available(
        self,
        resource_name: str,
        params: Optional[Dict[str, Any]] = None,
        page_size: int = 20,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """One page plus the metadata needed to ask for the next one."""
        resource = get_resource(resource_name)
        page = self.fetch_page(resource_name, params, cursor, page_size)
        info = page.page_info
        return {
            "count": info.total_count,
            "has_next_page": info.has_next_page,
            "next_page": info.end_cursor,
            resource.items_key: page.items,
        }

    # -- account medias -----------------------------------------------------

    def get_medias_by_user_id(self, account_id: str, count: int = 12, max_id: Optional[str] = None) -> List[Any]:
        return self.collect(
            "account_medias", {"account_id": account_id}, count,
            page_size=min(max(count, 1), self.account_medias_page_size), delayed=False, start_cursor=max_id,
        ).items

    def get_paginate_medias_by_user_id(
        self, account_id: str, count: int = 12, max_id: Optional[str] = None
    ) -> AccumulatedResult:
        return self.collect_with_handle(
            "account_medias", {"account_id": account_id}, count,
            page_size=min(max(count, 1), self.account_medias_page_size), delayed=False, start_cursor=max_id,
        )

    # -- comments and likes -------------------------------------------------

    def get_media_comments_by_code(self, code: str, count: int = 10, max_id: Optional[str] = None) -> List[Any]:
        return self.collect(
            "media_comments", {"shortcode": code}, count,
            page_size=min(max(count, 1), self.max_comments_per_request),
            delayed=False, start_cursor=max_id, trim_last_page=True,
        ).items

    def get_media_comments_by_id(self, media_id: Any, count: int = 10, max_id: Optional[str] = None) -> List[Any]:
        code = media_id_to_shortcode(media_id)
        if not code:
            raise ValidationError(f"Malformed media id: {media_id}")
        return self.get_media_comments_by_code(code, count, max_id)

    def get_media_likes_by_code(self, code: str, count: int = 10, max_id: Optional[str] = None) -> List[Any]:
        return self.collect(
            "media_likes", {"shortcode": code}, count,
            page_size=min(max(count, 1), self.max_likes_per_request),
            delayed=False, start_cursor=max_id, trim_last_page=True,
        ).items

    # -- followers / following ---------------------------------------------

    def get_followers(self, account_id: str, count: int = 20, page_size: int = 20, delayed: bool = True) -> List[Any]:
        return self.collect("followers", {"account_id": account_id}, count,
                            page_size=page_size, delayed=delayed, strict=True).items

    def get_paginate_followers(
        self,
        account_id: str,
        count: int = 20,
        page_size: int = 20,
        delayed: bool = True,
        next_page: Optional[str] = None,
        cancel: Any = None,
    ) -> AccumulatedResult:
        return self.collect_with_handle("followers", {"account_id": account_id}, count,
                                        page_size=page_size, delayed=delayed, start_cursor=next_page,
                                        cancel=cancel, strict=True)

    def get_paginate_all_followers(
        self, account_id: str, page_size: int = 20, next_page: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.collect_all_available("followers", {"account_id": account_id}, page_size, next_page)

    def get_following(self, account_id: str, count: int = 20, page_size: int = 20, delayed: bool = True) -> List[Any]:
        return self.collect("following", {"account_id": account_id}, count,
                            page_size=page_size, delayed=delayed, strict=True).items

    def get_paginate_following(
        self,
        account_id: str,
        count: int = 20,
        page_size: int = 20,
        delayed: bool = True,
        next_page: Optional[str] = None,
        cancel: Any = None,
    ) -> AccumulatedResult:
        return self.collect_with_handle("following", {"account_id": account_id}, count,
                                        page_size=page_size, delayed=delayed, start_cursor=next_page,
                                        cancel=cancel, strict=True)

    def get_paginate_all_following(
        self, account_id: str, page_size: int = 20, next_page: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.collect_all_available("following", {"account_id": account_id}, page_size, next_page)

    # -- tag / location feeds -----------------------------------------------

    def get_medias_by_tag(
        self,
        tag: str,
        count: int = 12,
        max_id: Optional[str] = None,
        min_timestamp: Optional[int] = None,
    ) -> List[Any]:
        return self.collect("tag_medias", {"tag": tag}, count, delayed=False,
                            start_cursor=max_id, min_timestamp=min_timestamp).items

    def get_paginate_medias_by_tag(self, tag: str, max_id: Optional[str] = None) -> Dict[str, Any]:
        return self.collect_all_available("tag_medias", {"tag": tag}, cursor=max_id)

    def get_current_top_medias_by_tag_name(self, tag: str) -> List[Any]:
        return self.fetch_page("tag_top_medias", {"tag": tag}).items

    def get_medias_by_location_id(
        self, location_id: str, quantity: int = 24, offset: Optional[str] = None
    ) -> List[Any]:
        return self.collect("location_medias", {"location_id": location_id}, quantity,
                            delayed=False, start_cursor=offset).items

    def get_paginate_medias_by_location_id(self, location_id: str, max_id: Optional[str] = None) -> Dict[str, Any]:
        return self.collect_all_available("location_medias", {"location_id": location_id}, cursor=max_id)

    def get_current_top_medias_by_location_id(self, location_id: str) -> List[Any]:
        return self.fetch_page("location_top_medias", {"location_id": location_id}).items

    # -- direct threads -----------------------------------------------------

    def get_paginate_threads(
        self, limit: int = 10, message_limit: int = 10, cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        page = self.fetch_page("threads", {"message_limit": message_limit}, cursor, limit)
        return {
            "has_older": page.page_info.has_next_page,
            "oldest_cursor": page.page_info.end_cursor,
            "threads": page.items,
        }

    def get_threads(self, count: int = 10, limit: int = 10, message_limit: int = 10) -> List[Any]:
        return self.collect("threads", {"message_limit": message_limit}, count,
                            page_size=limit, delayed=False).items

    # -- session ------------------------------------------------------------

    def restore_session(
        self, session_id: Optional[str], csrf_token: Optional[str], cookies: Optional[Dict[str, str]] = None
    ) -> None:
        self.session.restore(session_id, csrf_token, cookies)

    def save_session(self, store: Optional[SessionStore] = None) -> str:
        store = store or self.session_store
        key = self.session.cache_key()
        store.save(key, self.session.to_blob())
        return key

    def load_session(self, session_id: str, store: Optional[SessionStore] = None) -> bool:
        store = store or self.session_store
        probe = Session(session_id=session_id)
        blob = store.load(probe.cache_key())
        if blob is None:
            return False
        saved = Session.from_blob(blob)
        self.session.restore(saved.session_id, saved.csrf_token, saved.cookies)
        return True
