"""Download and API node configuration for the localization package."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import jinja2
import tomli_w

log = logging.getLogger(__name__)

_ENV = jinja2.Environment(autoescape=False)

DEFAULT_DOWNLOAD_NODE = "自动选择节点"
DEFAULT_API_NODE = "零协会官方 API"

DEFAULT_DOWNLOAD_NODES = {
    "自动选择节点": "https://api.zeroasso.top/v2/download/files?file_name={{ file_name }}",
    "零协会镇江节点": "https://download.zeroasso.top/files/{{ file_name }}",
    "CloudFlare CDN(海外)": "https://cdn-download.zeroasso.top/files/{{ file_name }}",
}

DEFAULT_API_NODES = {
    "零协会官方 API": "https://api.zeroasso.top",
    "CloudFlare CDN API(海外)": "https://cdn-api.zeroasso.top",
}


def _parse_url(text: str) -> str:
    """Validate an absolute URL and return it in normalised form."""
    parts = urlsplit(text.strip())
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"invalid URL: {text!r}")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc, parts.path or "/", parts.query, parts.fragment)
    )


@dataclass
class Settings:
    """The selected download and API nodes."""

    download_node: str
    api_node: str


@dataclass
class GitHub:
    """Repository used to look up releases."""

    repo: str
    owner: str
    api: str

    def __post_init__(self) -> None:
        self.api = _parse_url(self.api)


class LLCConfig:
    """Node configuration: templated download endpoints and API endpoints."""

    def __init__(
        self,
        settings: Settings,
        github: GitHub,
        download_nodes: Mapping[str, str],
        api_nodes: Mapping[str, str],
    ) -> None:
        self.settings = settings
        self.github = github
        self._templates: dict[str, jinja2.Template] = {}
        self._sources: dict[str, str] = {}
        for name, source in sorted(download_nodes.items()):
            try:
                template = _ENV.from_string(source)
            except jinja2.TemplateSyntaxError as exc:
                log.warning("invalid download node found, skipping: %s", exc)
                continue
            self._templates[name] = template
            self._sources[name] = source
        self._api_nodes = {name: _parse_url(url) for name, url in sorted(api_nodes.items())}
        self._validate_and_fix()

    def _validate_and_fix(self) -> None:
        if self.settings.download_node not in self._templates:
            if not self._templates:
                raise ValueError("empty download nodes")
            log.warning(
                "download node '%s' not found, using first available node",
                self.settings.download_node,
            )
            self.settings.download_node = next(iter(self._templates))
        if self.settings.api_node not in self._api_nodes:
            if not self._api_nodes:
                raise ValueError("empty api nodes")
            log.warning(
                "API node '%s' not found, using first available node", self.settings.api_node
            )
            self.settings.api_node = next(iter(self._api_nodes))

    @property
    def download_nodes(self) -> dict[str, str]:
        """Download node names mapped to their template sources."""
        return dict(self._sources)

    @staticmethod
    def _render(template: jinja2.Template, file_name: str) -> str:
        return _parse_url(template.render(file_name=file_name))

    def download_url_for(self, file_name: str) -> str:
        """URL of ``file_name`` on the selected download node."""
        return self._render(self._templates[self.settings.download_node], file_name)

    def api_nodes(self) -> list[str]:
        """All API base URLs, ordered by node name."""
        return list(self._api_nodes.values())

    def fallback_download_nodes(self, file_name: str) -> list[str]:
        """URLs of ``file_name`` on every node other than the selected one."""
        return [
            self._render(template, file_name)
            for name, template in self._templates.items()
            if name != self.settings.download_node
        ]

    def to_dict(self) -> dict[str, Any]:
        """The configuration in its file layout."""
        return {
            "settings": {
                "download-node": self.settings.download_node,
                "api-node": self.settings.api_node,
            },
            "github": {
                "repo": self.github.repo,
                "owner": self.github.owner,
                "api": self.github.api,
            },
            "download-node": [
                {"name": name, "endpoint": source} for name, source in self._sources.items()
            ],
            "api-node": [
                {"name": name, "endpoint": url} for name, url in self._api_nodes.items()
            ],
        }

    def __repr__(self) -> str:
        return f"LLCConfig({self.to_dict()!r})"


def default_llc_config() -> LLCConfig:
    """The built-in configuration."""
    return LLCConfig(
        Settings(download_node=DEFAULT_DOWNLOAD_NODE, api_node=DEFAULT_API_NODE),
        GitHub(
            repo="LocalizeLimbusCompany",
            owner="LocalizeLimbusCompany",
            api="https://api.github.com",
        ),
        DEFAULT_DOWNLOAD_NODES,
        DEFAULT_API_NODES,
    )


def _get(mapping: Any, key: str, kind: type) -> Any:
    if not isinstance(mapping, Mapping):
        raise ValueError(f"invalid LLC configuration: expected a table around {key!r}")
    if key not in mapping:
        raise ValueError(f"invalid LLC configuration: missing field {key!r}")
    value = mapping[key]
    if not isinstance(value, kind):
        raise ValueError(f"invalid LLC configuration: field {key!r} has the wrong type")
    return value


def _nodes(items: list[Any]) -> dict[str, str]:
    return {_get(item, "name", str): _get(item, "endpoint", str) for item in items}


def from_dict(data: Mapping[str, Any]) -> LLCConfig:
    """Build a configuration from its file layout, repairing what can be repaired."""
    settings_data = _get(data, "settings", Mapping)
    github_data = _get(data, "github", Mapping)
    settings = Settings(
        download_node=_get(settings_data, "download-node", str),
        api_node=_get(settings_data, "api-node", str),
    )
    github = GitHub(
        repo=_get(github_data, "repo", str),
        owner=_get(github_data, "owner", str),
        api=_get(github_data, "api", str),
    )

    download_nodes = _nodes(_get(data, "download-node", list))
    if not download_nodes:
        log.warning("no downloaded nodes configured, using default nodes")
        download_nodes = dict(DEFAULT_DOWNLOAD_NODES)

    api_nodes = _nodes(_get(data, "api-node", list))
    if not api_nodes:
        log.warning("no API nodes configured, using default nodes")
        api_nodes = dict(DEFAULT_API_NODES)

    return LLCConfig(settings, github, download_nodes, api_nodes)


def loads(text: str) -> LLCConfig:
    """Parse a configuration from TOML text."""
    return from_dict(tomllib.loads(text))


def dumps(config: LLCConfig) -> str:
    """Render a configuration as TOML text."""
    data = config.to_dict()
    chunks = [
        "[settings]\n" + tomli_w.dumps(data["settings"]),
        "[github]\n" + tomli_w.dumps(data["github"]),
    ]
    for key in ("download-node", "api-node"):
        chunks.extend(f"[[{key}]]\n" + tomli_w.dumps(node) for node in data[key])
    return "\n".join(chunks)