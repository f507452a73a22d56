"""Neo4j implementation of ApplicationRepository.
Each application is one (:FriendApplication) node keyed by id; timestamps are
stored as ISO-8601 UTC strings with fixed precision so they sort as text.
"""

from datetime import datetime

from neo4j.exceptions import DriverError, Neo4jError

from friendlink.application.errors import ExternalServiceError
from friendlink.domain import ApplicationState, FriendApplication

_CONSTRAINT_QUERY = """
CREATE CONSTRAINT friend_application_id IF NOT EXISTS
FOR (a:FriendApplication) REQUIRE a.id IS UNIQUE
"""

_PROPERTIES = (
    "name",
    "link",
    "avatar_link",
    "descr",
    "email",
    "state",
    "original_link",
    "reject_reason",
    "pr_url",
    "pr_number",
    "created_at",
    "updated_at",
)


def _datetime_to_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def _iso_to_datetime(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _to_property(value):
    if isinstance(value, ApplicationState):
        return value.value
    if isinstance(value, datetime):
        return _datetime_to_iso(value)
    return value


def ensure_application_constraint(driver: object) -> None:
    """Create the uniqueness constraint on FriendApplication.id if missing."""
    try:
        with driver.session() as session:
            session.run(_CONSTRAINT_QUERY)
    except (DriverError, Neo4jError) as exc:
        raise ExternalServiceError(f"Neo4j constraint setup failed: {exc}") from exc


class Neo4jApplicationRepository:
    """Stores friend-link applications in Neo4j.
    Driver and Neo4j errors are re-raised as ExternalServiceError.
    """

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def add(self, application: FriendApplication) -> str:
        props = {key: _to_property(getattr(application, key)) for key in _PROPERTIES}
        self._run(
            """
            CREATE (a:FriendApplication {id: $id})
            SET a += $props
            """,
            id=application.id,
            props=props,
        )
        return application.id

    def get_by_id(self, application_id: str) -> FriendApplication | None:
        records = self._run(
            """
            MATCH (a:FriendApplication {id: $id})
            RETURN a
            """,
            id=application_id,
        )
        if not records:
            return None
        return _record_to_application(records[0])

    def update(self, application_id: str, **fields) -> bool:
        unknown = set(fields) - set(_PROPERTIES)
        if unknown:
            raise ValueError(f"Unknown application fields: {', '.join(sorted(unknown))}")
        props = {key: _to_property(value) for key, value in fields.items()}
        records = self._run(
            """
            MATCH (a:FriendApplication {id: $id})
            SET a += $props
            RETURN 1 AS ok
            """,
            id=application_id,
            props=props,
        )
        return bool(records)

    def list_all(self) -> list[FriendApplication]:
        records = self._run(
            """
            MATCH (a:FriendApplication)
            RETURN a
            ORDER BY a.created_at DESC
            """
        )
        return [_record_to_application(rec) for rec in records]

    def _run(self, query: str, **params) -> list:
        try:
            with self._driver.session() as session:
                return list(session.run(query, **params))
        except (DriverError, Neo4jError) as exc:
            raise ExternalServiceError(f"Neo4j query failed: {exc}") from exc


def _record_to_application(record) -> FriendApplication:
    a = record["a"]
    updated_at = a.get("updated_at")
    return FriendApplication(
        id=a["id"],
        name=a["name"],
        link=a["link"],
        avatar_link=a["avatar_link"],
        descr=a["descr"],
        email=a["email"],
        state=ApplicationState(a["state"]),
        original_link=a.get("original_link") or None,
        reject_reason=a.get("reject_reason") or None,
        pr_url=a.get("pr_url") or None,
        pr_number=a.get("pr_number"),
        created_at=_iso_to_datetime(a["created_at"]),
        updated_at=_iso_to_datetime(updated_at) if updated_at else None,
    )
