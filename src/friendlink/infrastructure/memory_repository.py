"""In-memory implementation of ApplicationRepository (no DB)."""

from dataclasses import replace

from friendlink.domain import FriendApplication


class InMemoryApplicationRepository:
    """Stores applications in memory. Listing is newest first, ties by reverse insertion."""

    def __init__(self) -> None:
        self._by_id: dict[str, FriendApplication] = {}
        self._order: list[str] = []

    def add(self, application: FriendApplication) -> str:
        if application.id not in self._by_id:
            self._order.append(application.id)
        self._by_id[application.id] = application
        return application.id

    def get_by_id(self, application_id: str) -> FriendApplication | None:
        return self._by_id.get(application_id)

    def update(self, application_id: str, **fields) -> bool:
        application = self._by_id.get(application_id)
        if application is None:
            return False
        self._by_id[application_id] = replace(application, **fields)
        return True

    def list_all(self) -> list[FriendApplication]:
        newest_first = [self._by_id[aid] for aid in reversed(self._order)]
        return sorted(newest_first, key=lambda a: a.created_at, reverse=True)
