"""Page tree models for the page persistence API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class NodeModel(BaseModel):
    """One node of a page tree as it travels over the wire."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1, max_length=200)
    kind: Literal["root", "section", "column", "widget"]
    widget_type: str | None = Field(default=None, alias="widgetType")
    props: dict[str, Any] = Field(default_factory=dict)
    style: dict[str, Any] = Field(default_factory=dict)
    advanced: dict[str, Any] = Field(default_factory=dict)
    responsive: dict[str, dict[str, dict[str, Any]]] = Field(default_factory=dict)
    children: list[NodeModel] = Field(default_factory=list)

    def to_tree(self) -> dict[str, Any]:
        """Serialized Node shape (widgetType only on widgets)."""
        d: dict[str, Any] = {"id": self.id, "kind": self.kind}
        if self.widget_type is not None:
            d["widgetType"] = self.widget_type
        d["props"] = self.props
        d["style"] = self.style
        d["advanced"] = self.advanced
        d["responsive"] = self.responsive
        d["children"] = [child.to_tree() for child in self.children]
        return d


class PageTreeRequest(BaseModel):
    """What the client sends to POST /pages/{page_id}."""

    model_config = {"extra": "forbid"}

    tree: NodeModel


class PageTreeResponse(BaseModel):
    """What GET /pages/{page_id} returns."""

    tree: dict[str, Any]


class SavePageResponse(BaseModel):
    ok: bool = True
    page_id: str
