"""
Catalog Synchronizer

Keeps the local menu, restaurant profile and order history consistent with
the backend for the current identity, and bootstraps new identities.

Write policy:
    1. apply the local change immediately
    2. send the remote write
    3. on failure raise a notice; the local change is NOT rolled back

Local and remote state can therefore diverge after a failed write. This is
accepted for a single-operator tool; nothing retries automatically.

Load order per identity is strictly sequential (profile → menu → orders):
the starter-menu seed relies on the profile row existing, and history is
fetched last so the first render is consistent.

Author: Khalil Bannouri
Version: 4.0.0
"""

import json
import logging
from typing import Any, Callable, Optional, Union

from bistro.constants import (
    DEFAULT_PROFILE,
    DELETE_ITEM_PROMPT,
    MENU_ITEMS_TABLE,
    ORDERS_TABLE,
    PROFILES_TABLE,
    SAMPLE_MENU,
)
from bistro.core.errors import ErrorKind, FetchFailed, SeedFailed
from bistro.schemas import (
    MenuItem,
    OrderRecord,
    PersistedId,
    RestaurantProfile,
    Session,
    TemporaryId,
)
from bistro.services.backend import BaseBackend
from bistro.services.enhancer import BaseMenuEnhancer
from bistro.state import AppState

logger = logging.getLogger(__name__)

ItemKey = Union[TemporaryId, PersistedId]


class CatalogSynchronizer:
    """
    Example:
        >>> catalog = CatalogSynchronizer(state, get_backend(), get_enhancer())
        >>> await catalog.load(session)
        >>> await catalog.save_item(item.model_copy(update={"price": 12.0}))
    """

    def __init__(
        self,
        state: AppState,
        backend: BaseBackend,
        enhancer: BaseMenuEnhancer,
    ):
        self._state = state
        self._backend = backend
        self._enhancer = enhancer
        # Bumped on every identity change; loads for an older identity are dropped.
        self._generation = 0

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def lookup(self, item_id: ItemKey) -> Optional[MenuItem]:
        for item in self._state.menu_items:
            if item.id == item_id:
                return item
        return None

    def find_by_key(self, raw_id: str) -> Optional[MenuItem]:
        """Find an item by the plain id string a client sends back."""
        for item in self._state.menu_items:
            if str(item.id) == raw_id:
                return item
        return None

    # =========================================================================
    # IDENTITY TRANSITIONS
    # =========================================================================

    def reset_to_guest(self) -> None:
        """Drop everything cached for the previous identity."""
        self._generation += 1
        self._state.menu_items = list(SAMPLE_MENU)
        self._state.history = []
        self._state.profile = DEFAULT_PROFILE
        self._state.is_loading = False
        logger.info("Catalog reset to guest defaults")

    def _is_current(self, generation: int) -> bool:
        return not self._state.detached and generation == self._generation

    async def load(self, session: Session) -> None:
        """
        Load profile, menu and history for a newly signed-in identity.

        Any fetch failure raises a single "sync failed" notice; the loading
        flag is always released.
        """
        self._generation += 1
        generation = self._generation
        self._state.is_loading = True
        logger.info(f"Loading catalog for {session.user_id}")

        try:
            profile = await self._load_profile(session)
            if not self._is_current(generation):
                return
            self._state.profile = profile

            seed_error = None
            try:
                items = await self._load_menu(session)
            except SeedFailed as e:
                seed_error = e
                items = []
            if not self._is_current(generation):
                return
            self._state.menu_items = items
            if seed_error is not None:
                self._state.notify(
                    "Could not set up your starter menu ❌",
                    level="error",
                    kind=ErrorKind.SEED_FAILED,
                )

            history = await self._load_history(session)
            if not self._is_current(generation):
                return
            self._state.history = history

            logger.info(
                f"Catalog loaded for {session.user_id}: "
                f"{len(items)} item(s), {len(history)} order(s)"
            )

        except Exception as e:
            if isinstance(e, FetchFailed):
                logger.error(f"Error fetching data: {e}")
            else:
                logger.exception("Error fetching data")
            if self._is_current(generation):
                self._state.notify(
                    "Error syncing data",
                    level="error",
                    kind=ErrorKind.FETCH_FAILED,
                )

        finally:
            if self._is_current(generation):
                self._state.is_loading = False

    async def _load_profile(self, session: Session) -> RestaurantProfile:
        result = await self._backend.select(
            PROFILES_TABLE,
            {"id": session.user_id},
            single=True,
        )
        if not result.success:
            raise FetchFailed(f"profile fetch failed: {result.error_message}")

        if result.data:
            return RestaurantProfile.from_row(result.data, DEFAULT_PROFILE)

        # First sign-in: every identity gets exactly one profile row.
        logger.info(f"Creating default profile for {session.user_id}")
        created = await self._backend.insert(PROFILES_TABLE, [{
            "id": session.user_id,
            "name": DEFAULT_PROFILE.name,
            "owner_name": session.name,
            "theme_color": DEFAULT_PROFILE.theme_color,
            "font_pair": DEFAULT_PROFILE.font_pair,
        }])
        if not created.success:
            raise FetchFailed(f"profile create failed: {created.error_message}")

        return DEFAULT_PROFILE.model_copy(update={"owner_name": session.name})

    async def _load_menu(self, session: Session) -> list[MenuItem]:
        result = await self._backend.select(MENU_ITEMS_TABLE, {"user_id": session.user_id})
        if not result.success:
            raise FetchFailed(f"menu fetch failed: {result.error_message}")

        if result.rows:
            return [MenuItem.from_row(row) for row in result.rows]

        return await self._seed(session)

    async def _seed(self, session: Session) -> list[MenuItem]:
        """Insert the starter menu for a brand-new identity and adopt the stored rows."""
        logger.info(f"Seeding starter menu for {session.user_id}")
        # to_row() leaves the sample's temporary ids out; the store assigns real ones.
        rows = [item.to_row(session.user_id) for item in SAMPLE_MENU]

        result = await self._backend.insert(MENU_ITEMS_TABLE, rows)
        if not result.success:
            logger.error(f"Seeding failed: {result.error_message}")
            raise SeedFailed("Seeding failed", detail=result.error_message)

        return [MenuItem.from_row(row) for row in result.rows]

    async def _load_history(self, session: Session) -> list[OrderRecord]:
        result = await self._backend.select(
            ORDERS_TABLE,
            {"user_id": session.user_id},
            order_by="timestamp",
            descending=True,
        )
        if not result.success:
            raise FetchFailed(f"order fetch failed: {result.error_message}")

        history = []
        for row in result.rows:
            try:
                history.append(OrderRecord.from_row(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable order row {row.get('id')}: {e}")
        return history

    # =========================================================================
    # WRITES
    # =========================================================================

    def _owned_by(self, session: Session) -> bool:
        return not self._state.detached and self._state.user_id == session.user_id

    def _rekey(self, temporary_id: TemporaryId, persisted_id: PersistedId) -> None:
        updated = []
        for existing in self._state.menu_items:
            if existing.id == temporary_id:
                updated.append(existing.model_copy(update={"id": persisted_id}))
            elif existing.id == persisted_id:
                continue
            else:
                updated.append(existing)
        self._state.menu_items = updated

    async def save_item(self, item: MenuItem) -> Optional[MenuItem]:
        """
        Create or update a dish.

        Items with a TemporaryId are created (the id is left out of the
        payload) and rekeyed to the store id on success; items with a
        PersistedId are updated in place.

        Returns:
            The item as it now stands locally, or None for guests
        """
        session = self._state.session
        if session is None:
            self._state.notify("Please login to save changes", level="warning")
            return None

        existed = self.lookup(item.id) is not None
        if existed:
            self._state.menu_items = [
                item if existing.id == item.id else existing
                for existing in self._state.menu_items
            ]
        else:
            self._state.menu_items = [item, *self._state.menu_items]

        result = await self._backend.upsert(MENU_ITEMS_TABLE, item.to_row(session.user_id))

        if not result.success:
            logger.error(f"Saving {item.name} failed: {result.error_message}")
            if not self._state.detached:
                self._state.notify(
                    "Failed to save to cloud ☁️",
                    level="warning",
                    kind=ErrorKind.WRITE_FAILED,
                )
            return item

        saved = item
        if isinstance(item.id, TemporaryId) and result.data:
            persisted_id = PersistedId(store_id=str(result.data["id"]))
            saved = item.model_copy(update={"id": persisted_id})
            if self._owned_by(session):
                self._rekey(item.id, persisted_id)
            logger.info(f"Dish {item.name} created as {persisted_id.store_id}")

        if not self._state.detached:
            self._state.notify(
                "Dish Refined! ✨" if existed else "New Dish Launched! 🚀",
                level="success",
            )
        return saved

    async def delete_item(
        self,
        item_id: ItemKey,
        confirm: Callable[[str], bool],
    ) -> bool:
        """
        Remove a dish after `confirm(prompt)` agrees.

        Returns:
            True if the dish was removed locally
        """
        session = self._state.session
        if session is None:
            return False
        if not confirm(DELETE_ITEM_PROMPT):
            logger.debug(f"Delete of {item_id} not confirmed")
            return False

        self._state.menu_items = [
            existing for existing in self._state.menu_items if existing.id != item_id
        ]

        if isinstance(item_id, TemporaryId):
            # Never reached the store.
            self._state.notify("Dish Discontinued 🗑️", level="success")
            return True

        result = await self._backend.delete(
            MENU_ITEMS_TABLE,
            {"id": item_id.store_id, "user_id": session.user_id},
        )
        if self._state.detached:
            return True

        if not result.success:
            logger.error(f"Deleting {item_id.store_id} failed: {result.error_message}")
            self._state.notify(
                "Failed to delete ❌",
                level="warning",
                kind=ErrorKind.WRITE_FAILED,
            )
        else:
            self._state.notify("Dish Discontinued 🗑️", level="success")
        return True

    async def update_profile(self, profile: RestaurantProfile) -> None:
        """Replace the local profile; signed-in users also push every field."""
        self._state.profile = profile

        session = self._state.session
        if session is None:
            return

        result = await self._backend.update(
            PROFILES_TABLE,
            profile.to_row(),
            {"id": session.user_id},
        )
        if self._state.detached:
            return

        if not result.success:
            logger.error(f"Profile update failed: {result.error_message}")
            self._state.notify(
                "Failed to update profile ❌",
                level="warning",
                kind=ErrorKind.WRITE_FAILED,
            )
        else:
            self._state.notify("Restaurant Settings Updated! 🏢", level="success")

    # =========================================================================
    # ENHANCEMENT
    # =========================================================================

    @staticmethod
    def _adopt_rewrite(
        rewritten: list[dict[str, Any]],
        current: list[MenuItem],
    ) -> list[MenuItem]:
        by_key = {str(item.id): item for item in current}
        adopted = []
        for data in rewritten:
            if not isinstance(data, dict):
                raise TypeError(f"expected a menu object, got {type(data).__name__}")
            original = by_key.get(str(data.get("id")))
            adopted.append(MenuItem(
                id=original.id if original else TemporaryId.mint(),
                name=data["name"],
                description=data.get("description") or "",
                price=float(data["price"]),
                half_price=original.half_price if original else None,
                category=data["category"],
                image=data.get("image") or (original.image if original else ""),
            ))
        return adopted

    async def enhance(self) -> bool:
        """
        Rewrite the menu copy through the enhancer.

        Replaces the local catalog only. Nothing is written to the store;
        each item has to be saved to persist the new copy.

        Returns:
            True if the catalog was replaced
        """
        if self._state.is_enhancing:
            logger.debug("Enhancement already running")
            return False

        self._state.is_enhancing = True
        generation = self._generation
        try:
            current = list(self._state.menu_items)
            payload = json.dumps([item.to_rewrite_payload() for item in current])
            result = await self._enhancer.enhance_menu(payload)

            if not self._is_current(generation):
                return False

            if not result.success or not result.items:
                logger.warning(f"Enhancement unavailable: {result.error_message}")
                self._state.notify("AI enhancement is unavailable right now", level="warning")
                return False

            try:
                enhanced = self._adopt_rewrite(result.items, current)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Enhancement returned an unusable menu: {e}")
                self._state.notify("AI enhancement is unavailable right now", level="warning")
                return False

            self._state.menu_items = enhanced
            self._state.notify(
                "AI Intelligence Applied! ✨ (Save items manually to persist)",
                level="success",
            )
            return True

        finally:
            self._state.is_enhancing = False
