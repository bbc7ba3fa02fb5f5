"""Application data store: the session's cache of stories, characters and notes.

Every mutation is "write, then reload the affected collection". The cache
is never patched locally; it only changes when a fetch replaces a whole
collection snapshot. Failed writes leave the cache untouched, surface a
message through the notifier and come back as a failed ``OpResult``.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Iterable, Optional

from config.exceptions import GatewayError
from gateway.base import (
    CHAPTERS,
    CHARACTERS,
    NOTES,
    STORIES,
    STORY_CHARACTERS,
    DataGateway,
)
from gateway.mapping import (
    chapter_to_row,
    character_to_row,
    compile_update,
    note_to_row,
    now_iso,
    row_to_chapter,
    row_to_character,
    row_to_note,
    row_to_story,
    story_to_row,
)
from models.character import Character
from models.enums import ErrorReason, StoryStatus
from models.note import Note
from models.result import OpResult
from models.story import Chapter, Story
from models.updates import ChapterUpdate, CharacterUpdate, NoteUpdate, StoryUpdate
from models.user import User
from session.provider import SessionProvider
from store.notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

StoreListener = Callable[["AppDataStore"], None]
Fetch = Callable[[], Awaitable[OpResult]]


class AppDataStore:
    """Single source of truth for the signed-in user's writing data.

    Construct one per process. The store follows the session: signing in
    loads every collection, signing out clears them.
    """

    def __init__(
        self,
        gateway: DataGateway,
        session: SessionProvider,
        notifier: Optional[Notifier] = None,
    ):
        self.gateway = gateway
        self.session = session
        self.notifier = notifier or LoggingNotifier()
        self._stories: tuple[Story, ...] = ()
        self._characters: tuple[Character, ...] = ()
        self._notes: tuple[Note, ...] = ()
        self._listeners: list[StoreListener] = []
        self._unbind_session = session.add_listener(self._on_session_change)

    # ---- Snapshots ----

    @property
    def stories(self) -> tuple[Story, ...]:
        return self._stories

    @property
    def characters(self) -> tuple[Character, ...]:
        return self._characters

    @property
    def notes(self) -> tuple[Note, ...]:
        return self._notes

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Call ``listener(store)`` after every cache replacement."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(
        self,
        stories: Optional[Iterable[Story]] = None,
        characters: Optional[Iterable[Character]] = None,
        notes: Optional[Iterable[Note]] = None,
    ):
        if stories is not None:
            self._stories = tuple(stories)
        if characters is not None:
            self._characters = tuple(characters)
        if notes is not None:
            self._notes = tuple(notes)
        for listener in list(self._listeners):
            listener(self)

    def clear(self):
        self._replace(stories=(), characters=(), notes=())

    def close(self):
        """Detach from the session provider."""
        self._unbind_session()

    def _same_session(self, user: User) -> bool:
        current = self.session.user
        return current is not None and current.id == user.id

    async def _on_session_change(self, user: Optional[User]):
        if user is None:
            self.clear()
        else:
            await self.fetch_all()

    # ---- Lookups ----

    def get_story(self, story_id: str) -> Optional[Story]:
        return next((s for s in self._stories if s.id == story_id), None)

    def get_chapter(self, story_id: str, chapter_id: str) -> Optional[Chapter]:
        story = self.get_story(story_id)
        if story is None:
            return None
        return next((c for c in story.chapters if c.id == chapter_id), None)

    def get_character(self, character_id: str) -> Optional[Character]:
        return next((c for c in self._characters if c.id == character_id), None)

    def get_note(self, note_id: str) -> Optional[Note]:
        return next((n for n in self._notes if n.id == note_id), None)

    def stories_by_status(self, status: Optional[StoryStatus] = None) -> list[Story]:
        if status is None:
            return list(self._stories)
        return [s for s in self._stories if s.status == status]

    def characters_for_story(self, story_id: str) -> list[Character]:
        story = self.get_story(story_id)
        if story is None:
            return []
        linked = set(story.characters)
        return [c for c in self._characters if c.id in linked]

    def search_characters(self, term: str) -> list[Character]:
        term = term.strip().lower()
        return [c for c in self._characters if term in c.name.lower()]

    def notes_with_tag(self, tag: str) -> list[Note]:
        tag = tag.strip().lower()
        return [n for n in self._notes if tag in (t.lower() for t in n.tags)]

    # ---- Fetch ----

    async def fetch_stories(self) -> OpResult:
        """Reload the user's stories with their chapters and character links."""
        user = self.session.user
        if user is None:
            self._replace(stories=())
            return OpResult.success(self._stories)
        try:
            rows = await self.gateway.select(
                STORIES, {"user_id": user.id}, order_by="created_at", descending=True
            )
            story_ids = [r["id"] for r in rows]
            if story_ids:
                outcomes = await asyncio.gather(
                    self.gateway.select(CHAPTERS, {"story_id": story_ids}, order_by="number"),
                    self.gateway.select(STORY_CHARACTERS, {"story_id": story_ids}),
                    return_exceptions=True,
                )
                # Both selects have settled; surface the first failure
                for outcome in outcomes:
                    if isinstance(outcome, BaseException):
                        raise outcome
                chapter_rows, link_rows = outcomes
            else:
                chapter_rows, link_rows = [], []
        except GatewayError as e:
            logger.error("Failed to fetch stories: %s", e)
            return OpResult.failure(ErrorReason.REMOTE_READ, "Could not load stories")

        if not self._same_session(user):
            logger.debug("Discarding story fetch for a session that has ended")
            return OpResult.success(self._stories)

        chapters: dict[str, list[Chapter]] = defaultdict(list)
        for row in chapter_rows:
            chapters[row["story_id"]].append(row_to_chapter(row))
        links: dict[str, list[str]] = defaultdict(list)
        for row in link_rows:
            links[row["story_id"]].append(row["character_id"])

        self._replace(stories=[row_to_story(r, chapters[r["id"]], links[r["id"]]) for r in rows])
        logger.debug("Loaded %d stories", len(self._stories))
        return OpResult.success(self._stories)

    async def fetch_characters(self) -> OpResult:
        user = self.session.user
        if user is None:
            self._replace(characters=())
            return OpResult.success(self._characters)
        try:
            rows = await self.gateway.select(
                CHARACTERS, {"user_id": user.id}, order_by="created_at"
            )
            character_ids = [r["id"] for r in rows]
            link_rows = (
                await self.gateway.select(STORY_CHARACTERS, {"character_id": character_ids})
                if character_ids else []
            )
        except GatewayError as e:
            logger.error("Failed to fetch characters: %s", e)
            return OpResult.failure(ErrorReason.REMOTE_READ, "Could not load characters")

        if not self._same_session(user):
            logger.debug("Discarding character fetch for a session that has ended")
            return OpResult.success(self._characters)

        links: dict[str, list[str]] = defaultdict(list)
        for row in link_rows:
            links[row["character_id"]].append(row["story_id"])

        self._replace(characters=[row_to_character(r, links[r["id"]]) for r in rows])
        logger.debug("Loaded %d characters", len(self._characters))
        return OpResult.success(self._characters)

    async def fetch_notes(self) -> OpResult:
        user = self.session.user
        if user is None:
            self._replace(notes=())
            return OpResult.success(self._notes)
        try:
            rows = await self.gateway.select(
                NOTES, {"user_id": user.id}, order_by="updated_at", descending=True
            )
        except GatewayError as e:
            logger.error("Failed to fetch notes: %s", e)
            return OpResult.failure(ErrorReason.REMOTE_READ, "Could not load notes")

        if not self._same_session(user):
            logger.debug("Discarding note fetch for a session that has ended")
            return OpResult.success(self._notes)

        self._replace(notes=[row_to_note(r) for r in rows])
        return OpResult.success(self._notes)

    async def fetch_all(self) -> OpResult:
        """Reload every collection; fails with the first failing collection."""
        results = await asyncio.gather(
            self.fetch_stories(), self.fetch_characters(), self.fetch_notes()
        )
        for result in results:
            if not result.ok:
                return result
        return OpResult.success()

    # ---- Mutation plumbing ----

    async def _mutate(
        self,
        action: str,
        write: Callable[[User], Awaitable[Any]],
        refresh: tuple[Fetch, ...],
    ) -> OpResult:
        """Run ``write`` against the gateway, then reload ``refresh``.

        A gateway error aborts before any reload; the cache is left as is.
        """
        user = self.session.user
        if user is None:
            message = f"Sign in to {action}"
            self.notifier.error(message)
            return OpResult.failure(ErrorReason.NOT_AUTHENTICATED, message)

        try:
            value = await write(user)
        except GatewayError as e:
            logger.error("Failed to %s: %s", action, e)
            message = f"Could not {action}"
            self.notifier.error(message)
            return OpResult.failure(ErrorReason.REMOTE_WRITE, message)

        results = await asyncio.gather(*(fetch() for fetch in refresh))
        stale = any(not r.ok for r in results)
        if stale:
            logger.warning("%s succeeded but reloading failed; cache is stale", action)
        return OpResult.success(value, stale=stale)

    def _missing(self, kind: str, identifier: str) -> OpResult:
        message = f"{kind} not found"
        logger.warning("%s: %s", message, identifier)
        self.notifier.error(message)
        return OpResult.failure(ErrorReason.NOT_FOUND, message)

    async def _replace_links(self, owner_column: str, owner_id: str,
                             other_column: str, other_ids: Iterable[str]):
        """Replace every join row of ``owner_id``: delete all, then re-insert."""
        await self.gateway.delete(STORY_CHARACTERS, {owner_column: owner_id})
        unique_ids = list(dict.fromkeys(other_ids))
        if unique_ids:
            await self.gateway.insert(
                STORY_CHARACTERS,
                [{owner_column: owner_id, other_column: other_id} for other_id in unique_ids],
            )

    async def _sync_story_totals(self, story_id: str):
        """Recompute the stored word count of a story from its chapters."""
        rows = await self.gateway.select(CHAPTERS, {"story_id": story_id})
        total = sum(r.get("word_count") or 0 for r in rows)
        await self.gateway.update(
            STORIES, {"word_count": total, "updated_at": now_iso()}, {"id": story_id}
        )

    # ---- Stories ----

    async def add_story(self, story: Story) -> OpResult:
        """Create a story; its id, timestamps and chapters are ignored.

        ``story.characters`` links existing characters to the new story.
        The result value is the new story's id.
        """
        async def write(user: User) -> str:
            rows = await self.gateway.insert(STORIES, story_to_row(story, user.id))
            story_id = rows[0]["id"]
            if story.characters:
                await self._replace_links("story_id", story_id, "character_id", story.characters)
            return story_id

        refresh = (self.fetch_stories, self.fetch_characters) if story.characters else (self.fetch_stories,)
        return await self._mutate("create story", write, refresh)

    async def update_story(self, story_id: str, update: StoryUpdate) -> OpResult:
        values = compile_update(update, relation_fields=("characters",))
        values["updated_at"] = now_iso()
        relink = update.is_set("characters")

        async def write(user: User) -> None:
            await self.gateway.update(STORIES, values, {"id": story_id, "user_id": user.id})
            if relink:
                await self._replace_links("story_id", story_id, "character_id", update.characters)

        refresh = (self.fetch_stories, self.fetch_characters) if relink else (self.fetch_stories,)
        return await self._mutate("update story", write, refresh)

    async def delete_story(self, story_id: str) -> OpResult:
        async def write(user: User) -> None:
            await self.gateway.delete(STORIES, {"id": story_id, "user_id": user.id})

        return await self._mutate(
            "delete story", write, (self.fetch_stories, self.fetch_characters)
        )

    # ---- Chapters ----

    async def add_chapter(self, story_id: str, chapter: Chapter) -> OpResult:
        """Create a chapter under ``story_id``; the result value is its id."""
        if self.session.user is not None and self.get_story(story_id) is None:
            return self._missing("Story", story_id)

        async def write(user: User) -> str:
            rows = await self.gateway.insert(CHAPTERS, chapter_to_row(chapter, story_id))
            await self._sync_story_totals(story_id)
            return rows[0]["id"]

        return await self._mutate("create chapter", write, (self.fetch_stories,))

    async def update_chapter(self, story_id: str, chapter_id: str,
                             update: ChapterUpdate) -> OpResult:
        if self.session.user is not None and self.get_story(story_id) is None:
            return self._missing("Story", story_id)
        values = compile_update(update)
        values["updated_at"] = now_iso()

        async def write(user: User) -> None:
            await self.gateway.update(CHAPTERS, values, {"id": chapter_id, "story_id": story_id})
            if "word_count" in values:
                await self._sync_story_totals(story_id)

        return await self._mutate("save chapter", write, (self.fetch_stories,))

    async def delete_chapter(self, story_id: str, chapter_id: str) -> OpResult:
        if self.session.user is not None and self.get_story(story_id) is None:
            return self._missing("Story", story_id)

        async def write(user: User) -> None:
            await self.gateway.delete(CHAPTERS, {"id": chapter_id, "story_id": story_id})
            await self._sync_story_totals(story_id)

        return await self._mutate("delete chapter", write, (self.fetch_stories,))

    # ---- Characters ----

    async def add_character(self, character: Character) -> OpResult:
        """Create a character and link it to ``character.story_ids``."""
        async def write(user: User) -> str:
            rows = await self.gateway.insert(CHARACTERS, character_to_row(character, user.id))
            character_id = rows[0]["id"]
            if character.story_ids:
                await self._replace_links("character_id", character_id, "story_id", character.story_ids)
            return character_id

        refresh = (self.fetch_characters, self.fetch_stories) if character.story_ids else (self.fetch_characters,)
        return await self._mutate("create character", write, refresh)

    async def update_character(self, character_id: str, update: CharacterUpdate) -> OpResult:
        values = compile_update(update, relation_fields=("story_ids",))
        relink = update.is_set("story_ids")

        async def write(user: User) -> None:
            # characters carry no updated_at, so an empty intent writes nothing
            if values:
                await self.gateway.update(
                    CHARACTERS, values, {"id": character_id, "user_id": user.id}
                )
            if relink:
                await self._replace_links("character_id", character_id, "story_id", update.story_ids)

        refresh = (self.fetch_characters, self.fetch_stories) if relink else (self.fetch_characters,)
        return await self._mutate("update character", write, refresh)

    async def delete_character(self, character_id: str) -> OpResult:
        async def write(user: User) -> None:
            await self.gateway.delete(CHARACTERS, {"id": character_id, "user_id": user.id})

        return await self._mutate(
            "delete character", write, (self.fetch_characters, self.fetch_stories)
        )

    async def remove_character_from_story(self, story_id: str, character_id: str) -> OpResult:
        """Unlink a character from a story; the character sheet survives."""
        async def write(user: User) -> None:
            await self.gateway.delete(
                STORY_CHARACTERS, {"story_id": story_id, "character_id": character_id}
            )

        return await self._mutate(
            "remove character from story", write, (self.fetch_stories, self.fetch_characters)
        )

    # ---- Notes ----

    async def add_note(self, note: Note) -> OpResult:
        async def write(user: User) -> str:
            rows = await self.gateway.insert(NOTES, note_to_row(note, user.id))
            return rows[0]["id"]

        return await self._mutate("create note", write, (self.fetch_notes,))

    async def update_note(self, note_id: str, update: NoteUpdate) -> OpResult:
        values = compile_update(update)
        values["updated_at"] = now_iso()

        async def write(user: User) -> None:
            await self.gateway.update(NOTES, values, {"id": note_id, "user_id": user.id})

        return await self._mutate("update note", write, (self.fetch_notes,))

    async def delete_note(self, note_id: str) -> OpResult:
        async def write(user: User) -> None:
            await self.gateway.delete(NOTES, {"id": note_id, "user_id": user.id})

        return await self._mutate("delete note", write, (self.fetch_notes,))
