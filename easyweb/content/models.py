from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field


def normalize_path(path: str) -> str:
    """Lowercase, single leading slash, no trailing slash (except root)."""
    path = "/" + path.strip().strip("/")
    return path.lower()


class FormField(BaseModel):
    name: str
    label: str = ""
    type: Literal["text", "email", "textarea", "checkbox", "hidden"] = "text"
    required: bool = False


class FormDefinition(BaseModel):
    name: str = "form"
    fields: list[FormField] = Field(default_factory=list)
    recipients: list[str] = Field(default_factory=list)


class Page(BaseModel):
    id: str
    path: str
    title: str = ""
    module: str | None = None
    template: str | None = None
    culture: str | None = None
    published: bool = True
    requires_login: bool = False
    redirect: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    form: FormDefinition | None = None

    @property
    def view_name(self) -> str:
        return self.template or "index"


class Asset(BaseModel):
    id: str
    filename: str
    path: str
    content_type: str | None = None


@dataclass
class SiteState:
    """Everything resolved about the current request target."""

    page: Page
    culture: str
    module: str | None = None
    user: Any = None
    edit_mode: bool = False


AssetKind = Literal["images", "documents"]


def asset_file(media_root: Path, asset: Asset) -> Path:
    return media_root / asset.path
