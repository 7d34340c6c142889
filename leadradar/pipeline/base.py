"""
Pipeline contracts.

ConversationAnalyzer is the strategy interface for conversation intelligence;
concrete analyzers register themselves in conversation.ANALYZERS. BatchResult
is the uniform output of every batch operation: per-item results plus an
error list, never all-or-nothing.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Type

from leadradar.pipeline.records import Conversation, Competitor, ConversationIntel


@dataclass
class BatchResult:
    """Uniform output from batch operations."""
    results: List[Dict[str, Any]] = field(default_factory=list)
    processed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.processed - self.failed

    @property
    def success_rate(self) -> float:
        if not self.processed:
            return 0.0
        return round(self.succeeded / self.processed * 100, 2)

    def summary(self) -> Dict[str, Any]:
        return {
            'total_processed': self.processed,
            'successful': self.succeeded,
            'failed': self.failed,
            'success_rate': self.success_rate,
        }


class ConversationAnalyzer(ABC):
    """
    Extracts sentiment and signal lists from one conversation.

    `competitors` lets an analyzer recognise named competitors in the text.
    """
    name: str = ''

    @abstractmethod
    def analyze(self, conversation: Conversation,
                competitors: Sequence[Competitor] = ()) -> ConversationIntel:
        ...


def get_analyzer_class(analyzers: Dict[str, Type[ConversationAnalyzer]], name: str) -> Type[ConversationAnalyzer]:
    """Look up a registered analyzer class by name."""
    analyzer_cls = analyzers.get(name)
    if not analyzer_cls:
        raise ValueError(f"No conversation analyzer registered as '{name}'")
    return analyzer_cls
