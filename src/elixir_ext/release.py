"""Latest-release lookup against GitHub."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Callable, Protocol

from pydantic import ValidationError

from elixir_ext.exceptions import NotFoundError, TransportError
from elixir_ext.schema import GithubReleaseDTO

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
_RELEASES_PER_PAGE = 30


@dataclass(frozen=True)
class ReleaseAsset:
    name: str
    download_url: str


@dataclass(frozen=True)
class ReleaseDescriptor:
    version: str
    assets: tuple[ReleaseAsset, ...] = ()

    def find_asset(self, name: str) -> ReleaseAsset | None:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


class ReleaseSource(Protocol):
    def latest_release(
        self,
        repo: str,
        *,
        require_assets: bool,
        pre_release: bool,
    ) -> ReleaseDescriptor: ...


class GithubReleaseSource:
    def __init__(
        self,
        *,
        token: str = "",
        api_base: str = GITHUB_API_BASE,
        timeout_seconds: float = 30.0,
        urlopen_fn: Callable[..., object] = urllib.request.urlopen,
    ) -> None:
        self._token = token.strip()
        self._api_base = str(api_base or GITHUB_API_BASE).rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._urlopen_fn = urlopen_fn

    def latest_release(
        self,
        repo: str,
        *,
        require_assets: bool,
        pre_release: bool,
    ) -> ReleaseDescriptor:
        payload = self._request_json(f"/repos/{repo}/releases?per_page={_RELEASES_PER_PAGE}")
        if not isinstance(payload, list):
            raise TransportError(
                f"unexpected release listing for {repo}",
                kind="invalid_response",
            )
        try:
            releases = [GithubReleaseDTO.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise TransportError(
                f"invalid release payload for {repo}: {exc}",
                kind="invalid_response",
            ) from exc

        for release in releases:
            if release.draft:
                continue
            if release.prerelease and not pre_release:
                continue
            if require_assets and not release.assets:
                continue
            logger.debug("latest release of %s is %s", repo, release.tag_name)
            return ReleaseDescriptor(
                version=release.tag_name,
                assets=tuple(
                    ReleaseAsset(name=asset.name, download_url=asset.browser_download_url)
                    for asset in release.assets
                ),
            )
        raise NotFoundError(f"no release found matching the criteria for {repo}")

    def _request_json(self, path: str) -> object:
        url = f"{self._api_base}{path}"
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "elixir-ext",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        request = urllib.request.Request(url=url, headers=headers, method="GET")
        try:
            with self._urlopen_fn(request, timeout=self._timeout_seconds) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            status = int(getattr(exc, "code", 0) or 0)
            if status == 404:
                raise NotFoundError(f"release endpoint not found: {url}") from None
            if status in {401, 403}:
                raise TransportError(
                    "GitHub request was rejected (auth/rate limit).",
                    kind="auth_or_rate_limit",
                ) from None
            raise TransportError(
                f"GitHub request failed with HTTP {status}.",
                kind="github_http",
            ) from None
        except (urllib.error.URLError, TimeoutError) as exc:
            raise TransportError(
                f"network error while fetching {url}: {exc}",
                kind="network",
            ) from exc

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportError("Invalid response from GitHub.", kind="invalid_response") from exc
