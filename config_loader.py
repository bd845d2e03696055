#!/usr/bin/env python3
"""
Config loader for the Instagram collection client.
Priority: .env > config.json > defaults.
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

GRAPHQL_QUERY_URL = "https://www.instagram.com/graphql/query/"

# env var -> (path under "instagram", cast)
ENV_OVERRIDES = {
    "IG_SESSIONID": (("authentication", "cookies", "sessionid"), str),
    "IG_CSRFTOKEN": (("authentication", "cookies", "csrftoken"), str),
    "IG_DS_USER_ID": (("authentication", "cookies", "ds_user_id"), str),
    "IG_USER_AGENT": (("authentication", "user_agent"), str),
    "HTTP_PROXY": (("proxy", "http"), str),
    "HTTPS_PROXY": (("proxy", "https"), str),
    "IG_PAGING_DELAY_MIN": (("settings", "paging_delay_min"), float),
    "IG_PAGING_DELAY_MAX": (("settings", "paging_delay_max"), float),
    "IG_PAGING_TIME_LIMIT": (("settings", "paging_time_limit"), int),
    "IG_TIMEOUT": (("settings", "timeout"), int),
    "IG_RETRY_ATTEMPTS": (("settings", "retry_attempts"), int),
    "IG_RETRY_DELAY": (("settings", "retry_delay"), int),
    "IG_REQUESTS_PER_MINUTE": (("settings", "requests_per_minute"), int),
    "IG_SESSION_CACHE_DIR": (("settings", "session_cache_dir"), str),
}


def _graphql_endpoint(query_hash, variables):
    return {
        "method": "GET",
        "url": GRAPHQL_QUERY_URL,
        "params": {"query_hash": query_hash},
        "variables": variables,
    }


class ConfigLoader:
    def __init__(self, config_file: str = "config.json"):
        self.config_file = Path(config_file)
        self.config = self._load_config()

    def _load_config(self):
        config = {
            "instagram": {
                "authentication": {
                    "cookies": {
                        "sessionid": "YOUR_SESSIONID_HERE",
                        "csrftoken": "YOUR_CSRFTOKEN_HERE",
                        "ds_user_id": "YOUR_DS_USER_ID_HERE",
                    },
                    "user_agent": None,
                    "headers": {},
                },
                "endpoints": {
                    "account_medias": _graphql_endpoint(
                        "e769aa130647d2354c40ea6a439bfc08",
                        {"id": "{account_id}", "first": "{count}", "after": "{cursor}"},
                    ),
                    "media_comments": _graphql_endpoint(
                        "97b41c52301f77ce508f55e66d17620e",
                        {"shortcode": "{shortcode}", "first": "{count}", "after": "{cursor}"},
                    ),
                    "media_likes": _graphql_endpoint(
                        "d5d763b1e2acf209d62d22d184488e57",
                        {"shortcode": "{shortcode}", "first": "{count}", "after": "{cursor}"},
                    ),
                    "followers": _graphql_endpoint(
                        "c76146de99bb02f6415203be841dd25a",
                        {
                            "id": "{account_id}",
                            "include_reel": True,
                            "fetch_mutual": False,
                            "first": "{count}",
                            "after": "{cursor}",
                        },
                    ),
                    "following": _graphql_endpoint(
                        "d04b0a864b4b54837c0d870b0e77e076",
                        {
                            "id": "{account_id}",
                            "include_reel": True,
                            "fetch_mutual": False,
                            "first": "{count}",
                            "after": "{cursor}",
                        },
                    ),
                    "tag_medias": {
                        "method": "GET",
                        "url": "https://www.instagram.com/explore/tags/{tag}/",
                        "params": {"__a": "1", "max_id": "{cursor}"},
                    },
                    "location_medias": {
                        "method": "GET",
                        "url": "https://www.instagram.com/explore/locations/{location_id}/",
                        "params": {"__a": "1", "max_id": "{cursor}"},
                    },
                    "threads": {
                        "method": "GET",
                        "url": "https://www.instagram.com/direct_v2/web/inbox/",
                        "params": {
                            "persistentBadging": "true",
                            "folder": "",
                            "limit": "{count}",
                            "thread_message_limit": "{message_limit}",
                            "cursor": "{cursor}",
                        },
                        "headers": {"x-ig-app-id": "936619743392459"},
                    },
                },
                "settings": {
                    "paging_delay_min": 1.0,
                    "paging_delay_max": 3.0,
                    "paging_time_limit": 1800,
                    "timeout": 30,
                    "retry_attempts": 3,
                    "retry_delay": 5,
                    "requests_per_minute": 0,
                    "request_jitter_ratio": 0.2,
                    "max_comments_per_request": 300,
                    "max_likes_per_request": 300,
                    "account_medias_page_size": 12,
                    "session_cache_dir": ".ig_sessions",
                },
                "proxy": {
                    "http": None,
                    "https": None,
                },
            }
        }

        if self.config_file.exists():
            with open(self.config_file, "r", encoding="utf-8") as file:
                json_config = json.load(file)
                self._deep_update(config, json_config)

        self._apply_env_overrides(config["instagram"])
        return config

    def _apply_env_overrides(self, ig):
        for env_name, (path, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if not raw:
                continue
            target = ig
            for key in path[:-1]:
                target = target[key]
            target[path[-1]] = cast(raw)

    def _deep_update(self, base, update):
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_update(base[key], value)
            else:
                base[key] = value

    def get(self, key_path, default=None):
        keys = key_path.split(".")
        value = self.config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_cookies(self):
        cookies = self.get("instagram.authentication.cookies", {}) or {}
        return {
            key: str(value)
            for key, value in cookies.items()
            if value and not str(value).startswith("YOUR_")
        }

    def get_proxy_settings(self):
        proxy = self.config.get("instagram", {}).get("proxy", {})
        if proxy.get("http") or proxy.get("https"):
            return {
                "http": proxy.get("http"),
                "https": proxy.get("https"),
            }
        return None
