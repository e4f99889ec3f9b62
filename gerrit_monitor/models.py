"""Pydantic models describing Gerrit entities and their attention categories."""

from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from functools import cached_property
from typing import Any

import pendulum
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_serializer, field_validator, model_validator

from gerrit_monitor.description import Description

_AUTOGENERATED_PREFIX = "autogenerated:"
_NOTEWORTHY_AUTOGENERATED_TAGS = frozenset(
    {
        "autogenerated:gerrit:newPatchSet",
        "autogenerated:gerrit:newWipPatchSet",
    },
)
_GERRIT_TIME_FORMAT = "YYYY-MM-DD HH:mm:ss"
_CODE_REVIEW_LABEL = "Code-Review"
_STALE_AFTER = pendulum.duration(hours=24)
_SMALL_DELTA = 30
_MEDIUM_DELTA = 300


class ChangelistDataError(ValueError):
    """Raised when a changelist lacks data required to answer a query."""


class Category(StrEnum):
    """Type of attention a changelist needs from a user."""

    NONE = "none"
    STALE = "stale"
    NO_REVIEWERS = "no_reviewers"
    WORK_IN_PROGRESS = "work_in_progress"
    INCOMING_NEEDS_ATTENTION = "incoming_needs_attention"
    OUTGOING_NEEDS_ATTENTION = "outgoing_needs_attention"
    READY_TO_SUBMIT = "ready_to_submit"


class SizeCategory(StrEnum):
    """Bucket for the number of lines changed by a changelist."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class GerritModel(BaseModel):
    """Base model accepting Gerrit field names alongside Python names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Account(GerritModel):
    """Gerrit account; identity is the numeric account id."""

    id: int = Field(alias="_account_id")
    name: str | None = None
    email: str | None = None
    username: str | None = None

    def is_same(self, other: "Account") -> bool:
        """Return True when both accounts share the same id."""
        return self.id == other.id


class CommitInfo(GerritModel):
    """Commit details of a revision, present only for detailed queries."""

    message: str
    subject: str | None = None


class Revision(GerritModel):
    """A single patchset of a changelist."""

    number: int = Field(alias="_number")
    commit: CommitInfo | None = None

    @property
    def commit_message(self) -> str:
        """Return the full commit message of the revision."""
        if self.commit is None:
            msg = f"Revision {self.number} has no commit data (fetch with detailed information)"
            raise ChangelistDataError(msg)
        return self.commit.message


class LabelVote(GerritModel):
    """One account's vote on a label; anonymous entries carry no account id."""

    account_id: int | None = Field(default=None, alias="_account_id")
    value: int = 0
    name: str | None = None


def _empty_votes() -> list[LabelVote]:
    return []


class Label(GerritModel):
    """Detailed label information listing every vote."""

    all: list[LabelVote] = Field(default_factory=_empty_votes)


class Message(GerritModel):
    """A single message, or event, in the history of a changelist."""

    id: str | None = None
    tag: str | None = None
    real_author: Account
    date: datetime
    message: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_gerrit_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_gerrit_time(value)
        return value

    @field_serializer("date", when_used="json")
    def _format_gerrit_time(self, value: datetime) -> str:
        return format_gerrit_time(value)

    def should_be_ignored(self) -> bool:
        """Return True for autogenerated messages other than new patchset events."""
        if not self.tag:
            return False
        if not self.tag.startswith(_AUTOGENERATED_PREFIX):
            return False
        return self.tag not in _NOTEWORTHY_AUTOGENERATED_TAGS

    def is_authored_by(self, account: Account) -> bool:
        """Return True when the account is the real author of the message."""
        return self.real_author.is_same(account)

    def get_time(self) -> datetime:
        """Return the UTC time the message was posted."""
        return self.date


def format_gerrit_time(value: datetime) -> str:
    """Format a time the way Gerrit does, in UTC with nanosecond precision."""
    return pendulum.instance(value).in_timezone("UTC").format("YYYY-MM-DD HH:mm:ss.SSSSSS") + "000"


def parse_gerrit_time(value: str) -> datetime:
    """Parse Gerrit's ``YYYY-MM-DD HH:MM:SS.fffffffff`` UTC timestamps."""
    head, _, fraction = value.strip().partition(".")
    parsed = pendulum.from_format(head, _GERRIT_TIME_FORMAT, tz="UTC")
    if fraction:
        if not fraction.isdigit():
            msg = f"Invalid fractional seconds in Gerrit timestamp: {value!r}"
            raise ValueError(msg)
        parsed = parsed.add(microseconds=int(fraction[:6].ljust(6, "0")))
    return parsed


def _empty_messages() -> list[Message]:
    return []


def _empty_labels() -> dict[str, Label]:
    return {}


def _empty_stars() -> list[str]:
    return []


class Changelist(GerritModel):
    """A single CL in a search result.

    Build instances with :meth:`wrap` so the Gerrit host is bound and the raw
    payload is kept for :meth:`to_json`.
    """

    id: str | None = None
    project: str
    number: int = Field(alias="_number")
    subject: str | None = None
    owner: Account
    submittable: bool = False
    unresolved_comment_count: int = 0
    work_in_progress: bool = False
    insertions: int = 0
    deletions: int = 0
    labels: dict[str, Label] = Field(default_factory=_empty_labels)
    messages: list[Message] = Field(default_factory=_empty_messages)
    stars: list[str] = Field(default_factory=_empty_stars)
    revisions: dict[str, Revision]
    current_revision_id: str = Field(alias="current_revision")

    _host: str = PrivateAttr(default="")
    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_current_revision(self) -> "Changelist":
        if self.current_revision_id not in self.revisions:
            msg = f"Current revision {self.current_revision_id!r} of change {self.number} is missing from revisions"
            raise ValueError(msg)
        return self

    @classmethod
    def wrap(cls, host: str, payload: dict[str, Any]) -> "Changelist":
        """Validate a raw Gerrit change payload and bind it to its host."""
        changelist = cls.model_validate(payload)
        changelist._host = host
        changelist._raw = payload
        return changelist

    @property
    def host(self) -> str:
        """Return the Gerrit host the changelist was fetched from."""
        return self._host

    def to_json(self) -> dict[str, Any]:
        """Return the raw payload the changelist was built from."""
        return self._raw or self.model_dump(mode="json", by_alias=True)

    @property
    def url(self) -> str:
        """Return a URL opening Gerrit at this CL."""
        return f"{self._host}/c/{self.project}/+/{self.number}"

    @property
    def author_name(self) -> str | None:
        """Return the owner's display name (requires detailed accounts)."""
        return self.owner.name

    def is_owner(self, user: Account) -> bool:
        """Return True when the user owns this CL."""
        return self.owner.is_same(user)

    def is_submittable(self) -> bool:
        """Return True when Gerrit reports the CL as submittable."""
        return self.submittable

    def has_unresolved_comments(self) -> bool:
        """Return True when the CL has unresolved comments."""
        return self.unresolved_comment_count != 0

    def is_work_in_progress(self) -> bool:
        """Return True when the CL is labeled work in progress."""
        return self.work_in_progress

    @property
    def delta_size(self) -> int:
        """Return the number of lines changed by this CL."""
        return self.insertions + self.deletions

    def get_size_category(self) -> SizeCategory:
        """Return the size bucket for this CL."""
        delta_size = self.delta_size
        if delta_size < _SMALL_DELTA:
            return SizeCategory.SMALL
        if delta_size < _MEDIUM_DELTA:
            return SizeCategory.MEDIUM
        return SizeCategory.LARGE

    def filter_reviewers(self, predicate: Callable[[LabelVote], bool]) -> list[LabelVote]:
        """Return identified Code-Review votes matching the predicate."""
        label = self.labels.get(_CODE_REVIEW_LABEL)
        if label is None:
            return []
        return [vote for vote in label.all if vote.account_id and predicate(vote)]

    @cached_property
    def reviewers(self) -> list[LabelVote]:
        """Return the reviewers of this CL, excluding the owner."""
        return self.filter_reviewers(lambda vote: vote.account_id != self.owner.id)

    def has_reviewed(self, user: Account) -> bool:
        """Return True when the user gave a positive Code-Review vote."""
        return bool(self.filter_reviewers(lambda vote: vote.value > 0 and vote.account_id == user.id))

    @cached_property
    def current_revision(self) -> Revision:
        """Return the current revision (aka patchset) of this CL."""
        return self.revisions[self.current_revision_id]

    @cached_property
    def description(self) -> Description:
        """Return the parsed CL description (requires detailed information)."""
        return Description(self.current_revision.commit_message)

    def is_stale(self, now: datetime | None = None) -> bool:
        """Return True when the last qualifying message is more than 24h old."""
        last_message = next((m for m in reversed(self.messages) if not m.should_be_ignored()), None)
        if last_message is None:
            # Only autogenerated activity: fall back to the last event of any kind.
            if not self.messages:
                return True
            last_message = self.messages[-1]
        reference = now or pendulum.now("UTC")
        return reference - last_message.get_time() > _STALE_AFTER

    def author_commented_after_user(self, user: Account) -> bool:
        """Return True when the owner spoke after the user, or neither spoke."""
        relevant = [
            message
            for message in self.messages
            if not message.should_be_ignored() and (message.is_authored_by(user) or message.is_authored_by(self.owner))
        ]
        if not relevant:
            return True
        return relevant[-1].is_authored_by(self.owner)

    def latest_star_marker(self) -> tuple[int, bool] | None:
        """Return ``(revision number, reviewed)`` for the highest reviewed/unreviewed star."""
        latest: tuple[int, bool] | None = None
        for star in self.stars:
            kind, separator, revision = star.partition("/")
            if not separator or kind not in ("reviewed", "unreviewed"):
                continue
            try:
                number = int(revision)
            except ValueError:
                continue
            if latest is None or number > latest[0]:
                latest = (number, kind == "reviewed")
        return latest

    def get_category(self, user: Account, now: datetime | None = None) -> Category:
        """Return the type of attention this CL needs from the user.

        Rules are evaluated in priority order and the first match wins.
        """
        if self.is_owner(user):
            if self.is_submittable() and not self.has_unresolved_comments():
                return Category.READY_TO_SUBMIT
            if self.is_work_in_progress():
                return Category.WORK_IN_PROGRESS
            if not self.reviewers:
                return Category.NO_REVIEWERS
            if self.has_unresolved_comments():
                return Category.OUTGOING_NEEDS_ATTENTION
            if self.is_stale(now):
                return Category.STALE
            return Category.NONE

        if self.has_reviewed(user):
            return Category.NONE

        marker = self.latest_star_marker()
        if marker is not None and marker[0] == self.current_revision.number:
            return Category.NONE if marker[1] else Category.INCOMING_NEEDS_ATTENTION

        # Gerrit's API does not expose every comment, so unresolved comments
        # are ignored when the user spoke more recently than the owner.
        if self.author_commented_after_user(user):
            return Category.INCOMING_NEEDS_ATTENTION
        return Category.NONE
