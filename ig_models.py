"""
Typed records mapped from raw Instagram JSON nodes.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from ig_errors import ProtocolError

SHORTCODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


def extract_shortcode(post_url: str) -> Optional[str]:
    match = re.search(r"instagram\.com/(p|reel|tv)/([^/?#]+)/?", post_url)
    if not match:
        return None
    return match.group(2)


def shortcode_to_media_id(shortcode: str) -> Optional[str]:
    media_id = 0
    try:
        for char in shortcode:
            media_id = media_id * 64 + SHORTCODE_ALPHABET.index(char)
    except ValueError:
        return None
    return str(media_id)


def media_id_to_shortcode(media_id: Any) -> Optional[str]:
    # Feed ids look like "<media>_<owner>"; only the media part encodes.
    raw = str(media_id).split("_", 1)[0]
    if not raw.isdigit():
        return None
    number = int(raw)
    code = ""
    while number > 0:
        number, remainder = divmod(number, 64)
        code = SHORTCODE_ALPHABET[remainder] + code
    return code or SHORTCODE_ALPHABET[0]


def deep_get(data: Any, path: List[Any]) -> Any:
    cur = data
    for key in path:
        if isinstance(cur, dict) and key in cur:
            cur = cur[key]
            continue
        if isinstance(cur, list) and isinstance(key, int) and 0 <= key < len(cur):
            cur = cur[key]
            continue
        return None
    return cur


def pick_first_path(data: dict, paths: List[List[Any]]) -> Any:
    for path in paths:
        value = deep_get(data, path)
        if value is not None:
            return value
    return None


def parse_timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    if isinstance(value, str):
        return value
    return None


def _epoch(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _require_id(node: dict, kind: str) -> str:
    node_id = node.get("id") or node.get("pk")
    if node_id is None:
        raise ProtocolError(f"{kind} node is missing its id")
    return str(node_id)


@dataclass
class Account:
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    is_verified: bool = False
    is_private: bool = False
    profile_pic_url: Optional[str] = None
    created_at: Optional[int] = None

    @classmethod
    def from_node(cls, node: dict) -> "Account":
        return cls(
            id=_require_id(node, "Account"),
            username=node.get("username"),
            full_name=node.get("full_name"),
            is_verified=bool(node.get("is_verified")),
            is_private=bool(node.get("is_private")),
            profile_pic_url=node.get("profile_pic_url"),
        )


@dataclass
class Media:
    id: str
    shortcode: Optional[str] = None
    created_at: Optional[int] = None
    caption: Optional[str] = None
    owner_id: Optional[str] = None
    like_count: Optional[int] = None
    comment_count: Optional[int] = None
    is_video: bool = False
    display_url: Optional[str] = None

    @property
    def link(self) -> Optional[str]:
        if not self.shortcode:
            return None
        return f"https://www.instagram.com/p/{self.shortcode}/"

    @property
    def created_at_iso(self) -> Optional[str]:
        return parse_timestamp(self.created_at)

    @classmethod
    def from_node(cls, node: dict) -> "Media":
        media_id = _require_id(node, "Media")
        owner_id = deep_get(node, ["owner", "id"])
        return cls(
            id=media_id,
            shortcode=node.get("shortcode") or node.get("code") or media_id_to_shortcode(media_id),
            created_at=_epoch(node.get("taken_at_timestamp") or node.get("taken_at") or node.get("date")),
            caption=pick_first_path(node, [
                ["edge_media_to_caption", "edges", 0, "node", "text"],
                ["caption", "text"],
                ["caption"],
            ]),
            owner_id=str(owner_id) if owner_id is not None else None,
            like_count=pick_first_path(node, [
                ["edge_liked_by", "count"],
                ["edge_media_preview_like", "count"],
                ["like_count"],
            ]),
            comment_count=pick_first_path(node, [
                ["edge_media_to_comment", "count"],
                ["comment_count"],
            ]),
            is_video=bool(node.get("is_video")),
            display_url=node.get("display_url") or node.get("thumbnail_src"),
        )


@dataclass
class Comment:
    id: str
    text: Optional[str] = None
    created_at: Optional[int] = None
    like_count: Optional[int] = None
    owner: Optional[Account] = None
    reply_count: int = 0

    @classmethod
    def from_node(cls, node: dict) -> "Comment":
        like_count = node.get("like_count")
        if like_count is None:
            like_count = node.get("comment_like_count")
        if like_count is None:
            like_count = deep_get(node, ["edge_liked_by", "count"])

        reply_count = deep_get(node, ["edge_threaded_comments", "count"])
        if reply_count is None:
            reply_count = node.get("child_comment_count")

        user = node.get("owner") or node.get("user")
        owner = None
        if isinstance(user, dict) and (user.get("id") or user.get("pk")):
            owner = Account.from_node(user)

        return cls(
            id=_require_id(node, "Comment"),
            text=node.get("text") or node.get("comment_text"),
            created_at=_epoch(node.get("created_at") or node.get("created_at_utc")),
            like_count=like_count,
            owner=owner,
            reply_count=reply_count or 0,
        )


@dataclass
class Thread:
    id: str
    title: Optional[str] = None
    usernames: List[str] = field(default_factory=list)
    item_count: int = 0
    created_at: Optional[int] = None

    @classmethod
    def from_node(cls, node: dict) -> "Thread":
        thread_id = node.get("thread_id") or node.get("id")
        if thread_id is None:
            raise ProtocolError("Thread node is missing its id")
        activity = _epoch(node.get("last_activity_at"))
        # last_activity_at is reported in microseconds, older payloads use milliseconds
        if activity is not None and activity > 10 ** 14:
            activity //= 1_000_000
        elif activity is not None and activity > 10 ** 11:
            activity //= 1_000
        return cls(
            id=str(thread_id),
            title=node.get("thread_title"),
            usernames=[u.get("username") for u in node.get("users") or [] if isinstance(u, dict)],
            item_count=len(node.get("items") or []),
            created_at=activity,
        )
