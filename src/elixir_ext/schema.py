from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class GithubAssetDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    browser_download_url: str


class GithubReleaseDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag_name: str
    draft: bool = False
    prerelease: bool = False
    assets: List[GithubAssetDTO] = []


class BinarySettingsDTO(BaseModel):
    arguments: List[str] = []
    env: Dict[str, str] = {}


class LspSettingsDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    binary: Optional[BinarySettingsDTO] = None
    settings: Optional[Dict[str, Any]] = None
    initialization_options: Optional[Dict[str, Any]] = None


class CodeLabelSpanDTO(BaseModel):
    start: int
    end: int


class CodeLabelDTO(BaseModel):
    code: str
    spans: List[CodeLabelSpanDTO]
    filter_range: Tuple[int, int]


class LanguageServerCommandDTO(BaseModel):
    command: str
    args: List[str] = []
    env: Dict[str, str] = Field(default_factory=dict)
