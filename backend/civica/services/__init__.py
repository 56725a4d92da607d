"""Registry, scoring and classification services."""

from civica.services.classification import ClassificationWorker, KeywordClassifier
from civica.services.registry import IssueRegistry, RegistryEvent
from civica.services.scoring import score

__all__ = [
    "ClassificationWorker",
    "IssueRegistry",
    "KeywordClassifier",
    "RegistryEvent",
    "score",
]
