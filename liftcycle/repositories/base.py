from liftcycle.repositories import keys
from liftcycle.repositories.item_store import ItemStore


class Repository:
    """Base for repositories scoped to one user's partition."""

    def __init__(self, store: ItemStore, user_id: str):
        self._store = store
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def partition_key(self) -> str:
        return keys.user_pk(self._user_id)
