from __future__ import annotations

from liftcycle.models.enums import ItemType
from liftcycle.repositories import keys
from liftcycle.repositories.base import Repository
from liftcycle.schemas.analysis import UserProfile
from liftcycle.schemas.cycle import CycleArchive, CycleState


class CycleRepository(Repository):
    async def get_current(self) -> CycleState | None:
        item = await self._store.get(self.partition_key, keys.CURRENT_CYCLE_SK)
        if item is None:
            return None
        return CycleState.model_validate(_strip_keys(item, CycleState.model_fields))

    async def save_current(self, state: CycleState) -> None:
        await self._store.put({
            "PK": self.partition_key,
            "SK": keys.CURRENT_CYCLE_SK,
            "GSI2PK": keys.cycle_index_pk(self.user_id, state.cycle_number),
            "GSI2SK": "META",
            "type": ItemType.CURRENT_CYCLE.value,
            **state.model_dump(mode="json"),
        })

    async def archive(self, archive: CycleArchive) -> None:
        await self._store.put({
            "PK": self.partition_key,
            "SK": keys.cycle_sk(archive.cycle_number),
            "GSI2PK": keys.cycle_index_pk(self.user_id, archive.cycle_number),
            "GSI2SK": "ARCHIVE",
            "type": ItemType.CYCLE_ARCHIVE.value,
            **archive.model_dump(mode="json"),
        })

    async def list_archives(self, descending: bool = True) -> list[CycleArchive]:
        items = await self._store.query_by_prefix(
            self.partition_key, keys.CYCLE_PREFIX, descending=descending
        )
        return [
            CycleArchive.model_validate(_strip_keys(item, CycleArchive.model_fields))
            for item in items
            if item.get("type") == ItemType.CYCLE_ARCHIVE.value
        ]


class ProfileRepository(Repository):
    async def get(self) -> UserProfile | None:
        item = await self._store.get(self.partition_key, keys.PROFILE_SK)
        if item is None:
            return None
        return UserProfile.model_validate(_strip_keys(item, UserProfile.model_fields))

    async def save(self, profile: UserProfile) -> None:
        await self._store.put({
            "PK": self.partition_key,
            "SK": keys.PROFILE_SK,
            "type": ItemType.USER_PROFILE.value,
            **profile.model_dump(mode="json"),
        })


def _strip_keys(item: dict, fields: dict) -> dict:
    return {k: v for k, v in item.items() if k in fields}
