"""Structured log message templates for the release check.

Hey future me - instead of "error for artist 123" we log small trees:

    ⚠️ Artist Release Fetch Failed
    ├─ User: 3f1c...
    ├─ Artist: Daft Punk (4tZwfgrHOc3mvqYlEYSvVi)
    └─ Reason: ReadTimeout

Icon first for scanning, then the entity, then the context. The batch logs every user
and artist, so keep these short - no multi-line hints on per-artist lines.

Usage:
    from tunealert.infrastructure.observability.log_messages import LogMessages

    logger.info(LogMessages.job_started(job="check-new-releases", cursor=None, batch_size=30))
"""

from dataclasses import dataclass


@dataclass
class LogTemplate:
    """A log message: icon + title line followed by tree-formatted fields."""

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def format(self) -> str:
        """Render the template.

        Values are used verbatim. Error messages can contain braces, so nothing here goes
        through str.format().
        """
        lines = [f"{self.icon} {self.title}"]

        field_items = list(self.fields.items())
        for i, (key, value) in enumerate(field_items):
            # Last line gets └─ unless a hint follows
            prefix = "└─" if i == len(field_items) - 1 and not self.hint else "├─"
            lines.append(f"{prefix} {key}: {value}")

        if self.hint:
            lines.append(f"└─ 💡 {self.hint}")

        return "\n".join(lines)


class LogMessages:
    """Collection of standardized log message templates for batch jobs."""

    # === Job Lifecycle ===

    @staticmethod
    def job_started(job: str, cursor: str | None, batch_size: int) -> str:
        return LogTemplate(
            icon="▶️",
            title=f"{job} Started",
            fields={
                "Checkpoint": cursor or "<start of cycle>",
                "Batch Size": str(batch_size),
            },
        ).format()

    @staticmethod
    def job_completed(
        job: str,
        users: int,
        notifications: int,
        duration_ms: int,
        next_cursor: str | None,
        failures: int = 0,
        deadline_reached: bool = False,
    ) -> str:
        fields = {
            "Users": str(users),
            "Notifications": str(notifications),
            "Duration": f"{duration_ms}ms",
            "Next Checkpoint": next_cursor or "<none>",
        }
        if failures:
            fields["Isolated Failures"] = str(failures)
        if deadline_reached:
            fields["Stopped"] = "time budget reached"
        return LogTemplate(icon="✅", title=f"{job} Completed", fields=fields).format()

    @staticmethod
    def job_failed(job: str, error: str, hint: str | None = None) -> str:
        return LogTemplate(
            icon="❌",
            title=f"{job} Failed",
            fields={"Reason": error, "Checkpoint": "status=error"},
            hint=hint,
        ).format()

    @staticmethod
    def job_already_running(job: str, last_run_at: str | None) -> str:
        return LogTemplate(
            icon="⏸️",
            title=f"{job} Skipped",
            fields={"Reason": "another run holds the claim", "Running Since": last_run_at or "?"},
        ).format()

    @staticmethod
    def cycle_completed(job: str) -> str:
        return LogTemplate(
            icon="🔄",
            title=f"{job} Cycle Completed",
            fields={"Checkpoint": "reset to start"},
        ).format()

    @staticmethod
    def deadline_reached(job: str, elapsed_seconds: float, budget_seconds: float) -> str:
        return LogTemplate(
            icon="⏰",
            title=f"{job} Time Budget Reached",
            fields={
                "Elapsed": f"{elapsed_seconds:.1f}s",
                "Budget": f"{budget_seconds:.1f}s",
            },
            hint="Progress saved, next invocation resumes from the checkpoint",
        ).format()

    # === Units of Work ===

    @staticmethod
    def user_failed(user_id: str, error: str) -> str:
        return LogTemplate(
            icon="⚠️",
            title="User Processing Failed",
            fields={"User": user_id, "Reason": error, "Cursor": "advanced anyway"},
        ).format()

    @staticmethod
    def artist_failed(user_id: str, artist_id: str, artist_name: str, error: str) -> str:
        return LogTemplate(
            icon="⚠️",
            title="Artist Release Fetch Failed",
            fields={
                "User": user_id,
                "Artist": f"{artist_name} ({artist_id})",
                "Reason": error,
            },
        ).format()

    @staticmethod
    def rate_limited(artist_id: str, waited_seconds: float) -> str:
        return LogTemplate(
            icon="🐢",
            title="Spotify Rate Limited",
            fields={
                "Artist": artist_id,
                "Backed Off": f"{waited_seconds:.1f}s",
                "Result": "artist skipped this run",
            },
        ).format()

    @staticmethod
    def releases_found(artist_name: str, count: int, created: int) -> str:
        return LogTemplate(
            icon="🎵",
            title=f"New Releases for {artist_name}",
            fields={"Within Window": str(count), "Notified": str(created)},
        ).format()


__all__ = ["LogMessages", "LogTemplate"]
