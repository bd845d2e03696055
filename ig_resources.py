"""
Resource descriptors: where each collection keeps its edges and page info.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ig_errors import ProtocolError, ValidationError
from ig_models import Account, Comment, Media, Thread, deep_get
from ig_outcome import Forbidden, unwrap
from ig_paging import PageInfo


@dataclass(frozen=True)
class PageShape:
    connection_paths: Tuple[Tuple[str, ...], ...]
    edges_key: str = "edges"
    node_key: Optional[str] = "node"
    # None means the page-info keys sit directly on the connection.
    page_info_key: Optional[str] = "page_info"
    has_next_key: str = "has_next_page"
    cursor_key: str = "end_cursor"
    count_key: Optional[str] = "count"
    paginated: bool = True
    edges_optional: bool = False
    require_ok_status: bool = False
    # Best-effort: zero edges with a nonzero count is read as a private account.
    private_when_empty: bool = False

    def find_connection(self, payload: dict) -> dict:
        for path in self.connection_paths:
            connection = deep_get(payload, list(path))
            if isinstance(connection, dict):
                return connection
        expected = " or ".join(".".join(path) for path in self.connection_paths)
        raise ProtocolError(f"Response is missing {expected}")

    def decode(self, payload: dict) -> Tuple[List[dict], PageInfo]:
        connection = self.find_connection(payload)

        edges = connection.get(self.edges_key)
        if edges is None and self.edges_optional:
            edges = []
        if not isinstance(edges, list):
            raise ProtocolError(f"Connection field '{self.edges_key}' is not a list")

        nodes = []
        for edge in edges:
            node = edge.get(self.node_key) if self.node_key and isinstance(edge, dict) else edge
            if not isinstance(node, dict):
                raise ProtocolError("Connection edge does not carry a node object")
            nodes.append(node)

        count = None
        if self.count_key:
            count = connection.get(self.count_key)
            if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
                raise ProtocolError(f"Connection field '{self.count_key}' is not an integer")

        if self.private_when_empty and not nodes and count:
            unwrap(Forbidden(f"Collection reports {count} entries but returned none. The account is private."))

        if not self.paginated:
            return nodes, PageInfo(has_next_page=False, end_cursor=None, total_count=count)

        info = connection.get(self.page_info_key) if self.page_info_key else connection
        if not isinstance(info, dict):
            raise ProtocolError(f"Connection field '{self.page_info_key}' is missing")
        has_next = info.get(self.has_next_key)
        if not isinstance(has_next, bool):
            raise ProtocolError(f"Page info field '{self.has_next_key}' is not a boolean")
        cursor = info.get(self.cursor_key)
        if has_next and cursor in (None, ""):
            raise ProtocolError(f"Page info reports more pages without '{self.cursor_key}'")

        return nodes, PageInfo(
            has_next_page=has_next,
            end_cursor=str(cursor) if cursor not in (None, "") else None,
            total_count=count,
        )


@dataclass(frozen=True)
class Resource:
    name: str
    endpoint: str
    shape: PageShape
    mapper: Callable[[dict], Any]
    not_found_message: str
    items_key: str = "items"


RESOURCES: Dict[str, Resource] = {
    "account_medias": Resource(
        name="account_medias",
        endpoint="account_medias",
        shape=PageShape(connection_paths=(("data", "user", "edge_owner_to_timeline_media"),)),
        mapper=Media.from_node,
        not_found_message="Account with given id does not exist.",
        items_key="medias",
    ),
    "media_comments": Resource(
        name="media_comments",
        endpoint="media_comments",
        shape=PageShape(connection_paths=(
            ("data", "shortcode_media", "edge_media_to_comment"),
            ("data", "shortcode_media", "edge_media_to_parent_comment"),
            ("data", "xdt_shortcode_media", "edge_media_to_parent_comment"),
        )),
        mapper=Comment.from_node,
        not_found_message="Media with given code does not exist or account is private.",
        items_key="comments",
    ),
    "media_likes": Resource(
        name="media_likes",
        endpoint="media_likes",
        shape=PageShape(connection_paths=(("data", "shortcode_media", "edge_liked_by"),)),
        mapper=Account.from_node,
        not_found_message="Media with given code does not exist or account is private.",
        items_key="accounts",
    ),
    "followers": Resource(
        name="followers",
        endpoint="followers",
        shape=PageShape(
            connection_paths=(("data", "user", "edge_followed_by"),),
            private_when_empty=True,
        ),
        mapper=Account.from_node,
        not_found_message="Account with this id doesn't exist",
        items_key="accounts",
    ),
    "following": Resource(
        name="following",
        endpoint="following",
        shape=PageShape(
            connection_paths=(("data", "user", "edge_follow"),),
            private_when_empty=True,
        ),
        mapper=Account.from_node,
        not_found_message="Account with this id doesn't exist",
        items_key="accounts",
    ),
    "tag_medias": Resource(
        name="tag_medias",
        endpoint="tag_medias",
        shape=PageShape(connection_paths=(
            ("graphql", "hashtag", "edge_hashtag_to_media"),
            ("data", "hashtag", "edge_hashtag_to_media"),
        )),
        mapper=Media.from_node,
        not_found_message="This tag does not exists or it has been hidden by Instagram",
        items_key="medias",
    ),
    "tag_top_medias": Resource(
        name="tag_top_medias",
        endpoint="tag_medias",
        shape=PageShape(
            connection_paths=(
                ("graphql", "hashtag", "edge_hashtag_to_top_posts"),
                ("data", "hashtag", "edge_hashtag_to_top_posts"),
            ),
            count_key=None,
            paginated=False,
        ),
        mapper=Media.from_node,
        not_found_message="This tag does not exists or it has been hidden by Instagram",
        items_key="medias",
    ),
    "location_medias": Resource(
        name="location_medias",
        endpoint="location_medias",
        shape=PageShape(connection_paths=(("graphql", "location", "edge_location_to_media"),)),
        mapper=Media.from_node,
        not_found_message="Location with this id doesn't exist",
        items_key="medias",
    ),
    "location_top_medias": Resource(
        name="location_top_medias",
        endpoint="location_medias",
        shape=PageShape(
            connection_paths=(("graphql", "location", "edge_location_to_top_posts"),),
            count_key=None,
            paginated=False,
        ),
        mapper=Media.from_node,
        not_found_message="Location with this id doesn't exist",
        items_key="medias",
    ),
    "threads": Resource(
        name="threads",
        endpoint="threads",
        shape=PageShape(
            connection_paths=(("inbox",),),
            edges_key="threads",
            node_key=None,
            page_info_key=None,
            has_next_key="has_older",
            cursor_key="oldest_cursor",
            count_key=None,
            edges_optional=True,
            require_ok_status=True,
        ),
        mapper=Thread.from_node,
        not_found_message="Inbox is not available.",
        items_key="threads",
    ),
}


def get_resource(name: str) -> Resource:
    try:
        return RESOURCES[name]
    except KeyError:
        raise ValidationError(f"Unknown resource: {name}") from None
