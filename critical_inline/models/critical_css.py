"""Models for critical CSS extraction workflows."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from critical_inline.core.config import settings

InjectTo = Literal["head", "head-prepend", "body", "body-prepend"]


class StylesheetEntry(BaseModel):
    """Stylesheet text keyed by the href it is referenced with."""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str


class InjectionTag(BaseModel):
    """Element the host build tool must insert at ``inject_to``."""

    tag: str
    attrs: Optional[Dict[str, Union[str, bool]]] = None
    children: Optional[Union[str, List["InjectionTag"]]] = None
    inject_to: InjectTo = "head-prepend"


class PageContext(BaseModel):
    """Per-page context handed over by the build tool."""

    filename: str
    bundle: Dict[str, Any] = Field(default_factory=dict)


class CriticalCssOptions(BaseModel):
    """Configuration bundle the build hook is created with."""

    viewport_width: int = Field(default=1200, gt=0)
    viewport_height: int = Field(default=800, gt=0)
    output_dir: str = Field(default="_site", min_length=1)
    timeout_ms: int = Field(default=30_000, gt=0)

    @classmethod
    def from_settings(cls, **overrides: Any) -> "CriticalCssOptions":
        """Build options from environment settings, applying non-null overrides."""

        values = {
            "viewport_width": settings.viewport_width,
            "viewport_height": settings.viewport_height,
            "output_dir": settings.output_dir,
            "timeout_ms": settings.timeout_ms,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


class InlineResult(BaseModel):
    """Page markup with stylesheet links replaced by their content."""

    html: str
    stylesheet_ids: List[str] = Field(default_factory=list)


class RewriteSuccess(BaseModel):
    """Critical CSS was inlined and the remaining assets deferred."""

    status: Literal["success"] = "success"
    html: str
    tags: List[InjectionTag] = Field(default_factory=list)
    critical_css: str = ""


class RewriteUnchanged(BaseModel):
    """The page is passed through as-is."""

    status: Literal["unchanged"] = "unchanged"
    html: str
    reason: str = ""
    tags: List[InjectionTag] = Field(default_factory=list)


RewriteOutcome = Annotated[Union[RewriteSuccess, RewriteUnchanged], Field(discriminator="status")]
