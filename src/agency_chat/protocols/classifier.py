"""Query classification protocol definitions.

Any object with a ``classify`` method matching this signature can be used
as a query classifier -- no inheritance required. The built-in classifier
is a deterministic rule table; a statistical model can be dropped in as
long as it honours the same return type.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from agency_chat.query.classifiers import Classification


@runtime_checkable
class QueryClassifier(Protocol):
    """Protocol for mapping a raw question to a difficulty tier."""

    def classify(self, question: str) -> Classification:
        """Classify a question.

        Parameters:
            question: The raw question text.

        Returns:
            A ``Classification`` carrying the tier and an analytics label.
        """
        ...
