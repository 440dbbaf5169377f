"""Pydantic schemas for GitHub tracker data."""

from pydantic import BaseModel, Field

from backoffice.db.enums import IssueType


class TrackerIssue(BaseModel):
    """An issue as fetched from the tracker."""
    id: int
    number: int
    title: str
    labels: list[str] = Field(default_factory=list)
    state: str | None = None


class TrackerMilestone(BaseModel):
    """A milestone as fetched from the tracker, with its issues."""
    id: int
    number: int | None = None
    title: str
    state: str | None = None
    open_count: int = 0
    closed_count: int = 0
    issues: list[TrackerIssue] = Field(default_factory=list)


class TrackerSnapshot(BaseModel):
    """Fresh pull of a repository's milestones and their issues."""
    repository: str | None = None
    milestones: list[TrackerMilestone] = Field(default_factory=list)


class TrackerIssueRead(TrackerIssue):
    """Tracker issue with the category derived from its labels."""
    issue_type: IssueType
