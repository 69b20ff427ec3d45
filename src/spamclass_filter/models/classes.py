"""
Spam class threshold models.

A thresholds file maps recipient addresses to ordered class boundaries:

    {
        "username@example.org": [
            {"name": "ham", "score": 0},
            {"name": "possible", "score": 3},
            {"name": "probable", "score": 10},
            {"name": "spam", "score": 999}
        ]
    }

The last boundary is unbounded; its score is only a placeholder.
"""

from pydantic import BaseModel, RootModel


class SpamClass(BaseModel):
    name: str
    score: float


class ClassesFile(RootModel[dict[str, list[SpamClass]]]):
    """Top-level thresholds file: address -> class boundaries."""
