"""Response schema of the summarization collaborator."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UrgencyLevel = Literal["LOW", "MEDIUM", "HIGH"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OverviewItem(_CamelModel):
    title: str
    description: str


class WorkflowCategory(_CamelModel):
    """A categorized group of action items."""

    category_name: str = Field(alias="categoryName")
    summary: str
    outstanding_items: list[str] = Field(alias="outstandingItems")
    urgency_level: UrgencyLevel = Field(alias="urgencyLevel")


class InboxTopic(_CamelModel):
    topic: str
    description: str
    count: int
    status: str


class InboxAnalysis(_CamelModel):
    summary: str
    topics: list[InboxTopic]


class LifeAnalysis(_CamelModel):
    """Full summarizer response."""

    overview: list[OverviewItem]
    workflows: list[WorkflowCategory]
    key_insights: list[str] = Field(alias="keyInsights")
    inbox_analysis: InboxAnalysis = Field(alias="inboxAnalysis")


def fallback_analysis() -> LifeAnalysis:
    """Well-formed result returned whenever the summarizer fails."""
    return LifeAnalysis(
        overview=[
            OverviewItem(
                title="Analysis Failed",
                description="Could not generate overview due to a network or API error.",
            )
        ],
        workflows=[],
        key_insights=["Failed to analyze data. Please try again or reduce the data volume."],
        inbox_analysis=InboxAnalysis(summary="Analysis unavailable.", topics=[]),
    )
