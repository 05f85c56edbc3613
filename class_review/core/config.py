from __future__ import annotations

import os

from pydantic import BaseModel, Field


class ReviewSettings(BaseModel):
    log_level: str = "INFO"
    seed_path: str | None = Field(
        default=None,
        description="JSON file used to seed the in-memory scheduling service",
    )
    label_separator: str = ", "
    unscheduled_label: str = "Unscheduled"
    unassigned_label: str = "Unassigned"


def load_settings() -> ReviewSettings:
    return ReviewSettings(
        log_level=os.getenv("CLASS_REVIEW_LOG_LEVEL", "INFO"),
        seed_path=os.getenv("CLASS_REVIEW_SEED_PATH") or None,
        label_separator=os.getenv("CLASS_REVIEW_LABEL_SEPARATOR", ", "),
        unscheduled_label=os.getenv("CLASS_REVIEW_UNSCHEDULED_LABEL", "Unscheduled"),
        unassigned_label=os.getenv("CLASS_REVIEW_UNASSIGNED_LABEL", "Unassigned"),
    )
