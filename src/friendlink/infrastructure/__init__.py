"""Infrastructure layer: concrete implementations of application ports."""

from friendlink.infrastructure.github import GitHubLinkHost
from friendlink.infrastructure.mail import SmtpMailer
from friendlink.infrastructure.memory_repository import InMemoryApplicationRepository
from friendlink.infrastructure.persistence.neo4j_repository import (
    Neo4jApplicationRepository,
    ensure_application_constraint,
)

__all__ = [
    "GitHubLinkHost",
    "InMemoryApplicationRepository",
    "Neo4jApplicationRepository",
    "SmtpMailer",
    "ensure_application_constraint",
]
