"""
Builds request URLs from the endpoint templates in the config.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from ig_errors import ValidationError


def render_template(value: Any, variables: Dict[str, Any]) -> Any:
    if isinstance(value, str):
        for key, replacement in variables.items():
            placeholder = "{" + key + "}"
            if placeholder in value:
                if replacement is None:
                    return None
                value = value.replace(placeholder, str(replacement))
        if re.search(r"\{[a-zA-Z0-9_]+\}", value):
            # unresolved placeholder remains
            return None
        return value
    if isinstance(value, dict):
        rendered = {}
        for k, v in value.items():
            rv = render_template(v, variables)
            if rv is not None:
                rendered[k] = rv
        return rendered
    if isinstance(value, list):
        rendered_list = []
        for item in value:
            rv = render_template(item, variables)
            if rv is not None:
                rendered_list.append(rv)
        return rendered_list
    return value


@dataclass
class RequestSpec:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


class EndpointBuilder:
    def __init__(self, endpoints: Dict[str, dict]):
        self.endpoints = endpoints

    def build(self, name: str, variables: Optional[Dict[str, Any]] = None) -> RequestSpec:
        endpoint = self.endpoints.get(name)
        if not endpoint:
            raise ValidationError(f"Endpoint not configured: {name}")

        variables = variables or {}
        url = render_template(endpoint.get("url"), variables)
        if not url:
            raise ValidationError(f"Endpoint URL missing for {name}")

        params = render_template(endpoint.get("params") or {}, variables)
        template = endpoint.get("variables")
        if template:
            rendered = render_template(template, variables)
            params[endpoint.get("variables_param", "variables")] = json.dumps(
                rendered, separators=(",", ":"), ensure_ascii=False
            )

        if params:
            url = url + ("&" if "?" in url else "?") + urlencode(params)

        return RequestSpec(
            method=endpoint.get("method", "GET").upper(),
            url=url,
            headers=dict(endpoint.get("headers") or {}),
        )
