"""Chapter editor session: edit buffer, debounced autosave, word count."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from config.exceptions import EditorClosedError, EditorError, NotFoundError
from models.enums import ChapterStatus, EditorState, ErrorReason
from models.result import OpResult
from models.story import Chapter
from models.updates import ChapterUpdate
from store.app_store import AppDataStore
from store.notifier import Notifier
from tools.text_utils import markup_word_count

logger = logging.getLogger(__name__)


class ChapterEditorSession:
    """Owns the editable buffer of one chapter.

    Every content change restarts a single inactivity timer; when it runs
    out the buffer is saved with ``automatic=True``. A manual save cancels
    the pending timer and saves immediately. ``chapter_id=None`` opens the
    session in "new" mode: the first successful save creates the chapter
    and closes the session.

    Timers are asyncio tasks, so edits must happen on a running event loop.
    """

    def __init__(
        self,
        store: AppDataStore,
        story_id: str,
        chapter_id: Optional[str] = None,
        notifier: Optional[Notifier] = None,
        autosave_delay: float = 3.0,
        default_title: str = "Chapter {number}",
        on_navigate: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.notifier = notifier or store.notifier
        self.story_id = story_id
        self.chapter_id = chapter_id
        self.is_new = chapter_id is None
        self.autosave_delay = autosave_delay
        self._default_title = default_title
        self._on_navigate = on_navigate

        self.state = EditorState.LOADING
        self.title = ""
        self.content = ""
        self.status = ChapterStatus.DRAFT
        self.number = 0
        self.word_count = 0
        self.last_saved: Optional[datetime] = None
        self._autosave_task: Optional[asyncio.Task] = None
        self._save_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "ChapterEditorSession":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    @property
    def autosave_pending(self) -> bool:
        return self._autosave_task is not None and not self._autosave_task.done()

    # ---- Lifecycle ----

    def open(self):
        """Seed the buffer from the store. Only the first call has an effect.

        Raises:
            NotFoundError: the story (or the chapter being edited) is not
                in the store.
        """
        if self.state != EditorState.LOADING:
            return
        self._seed()
        self.state = EditorState.EDITING
        logger.debug("Editor opened for story %s chapter %s", self.story_id, self.chapter_id or "new")

    def _seed(self):
        story = self.store.get_story(self.story_id)
        if story is None:
            raise NotFoundError("Story", self.story_id)
        if self.is_new:
            self.number = story.next_chapter_number()
            self.title = self._default_title.format(number=self.number)
            self.content = ""
            self.status = ChapterStatus.DRAFT
        else:
            chapter = self.store.get_chapter(self.story_id, self.chapter_id)
            if chapter is None:
                raise NotFoundError("Chapter", self.chapter_id)
            self.number = chapter.number
            self.title = chapter.title
            self.content = chapter.content
            self.status = chapter.status
        self.word_count = markup_word_count(self.content)

    def resync(self) -> bool:
        """Re-seed the buffer from the store's current copy of the chapter.

        Refused (returns False) in "new" mode, while an autosave is pending
        or a save is in flight, so unsaved edits are never dropped.
        """
        self._ensure_editable()
        if self.is_new or self.autosave_pending or self.saving:
            return False
        self._seed()
        return True

    def close(self):
        """Cancel any pending autosave; the session cannot be used afterwards."""
        self._cancel_autosave()
        self.state = EditorState.CLOSED

    def _ensure_editable(self):
        if self.state == EditorState.CLOSED:
            raise EditorClosedError()
        if self.state == EditorState.LOADING:
            raise EditorError("Editor session is not open")

    # ---- Editing ----

    def edit_content(self, markup: str):
        """Replace the buffer content and restart the autosave timer."""
        self._ensure_editable()
        self.content = markup
        self.word_count = markup_word_count(markup)
        self._schedule_autosave()

    def set_title(self, title: str):
        self._ensure_editable()
        self.title = title

    def set_status(self, status: ChapterStatus):
        self._ensure_editable()
        self.status = ChapterStatus(status)

    # ---- Autosave timer ----

    def _schedule_autosave(self):
        self._cancel_autosave()
        self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_after_delay())
        self.state = EditorState.AUTOSAVE_PENDING

    def _cancel_autosave(self):
        task, self._autosave_task = self._autosave_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _autosave_after_delay(self):
        await asyncio.sleep(self.autosave_delay)
        # Detach before saving so the save does not cancel its own task
        self._autosave_task = None
        await self.save(automatic=True)

    # ---- Save ----

    @property
    def saving(self) -> bool:
        return self._save_task is not None

    async def save(self, automatic: bool = False) -> OpResult:
        """Persist the buffer through the store.

        Manual saves confirm success through the notifier; automatic saves
        are silent. Failures are already surfaced by the store.

        Only one write is in flight at a time. A save requested meanwhile
        waits for it: in "new" mode it returns that save's result once the
        chapter exists, in edit mode it then writes the buffer again.
        """
        while self._save_task is not None:
            if self.state in (EditorState.CLOSED, EditorState.LOADING):
                break
            result = await asyncio.shield(self._save_task)
            if self.is_new and result.ok:
                if not automatic:
                    self.notifier.success("Chapter created")
                return result

        if self.state == EditorState.CLOSED:
            return OpResult.failure(ErrorReason.SESSION_CLOSED, "Editor session is closed")
        if self.state == EditorState.LOADING:
            return OpResult.failure(ErrorReason.SESSION_CLOSED, "Editor session is not open")

        self._cancel_autosave()
        self._save_task = asyncio.get_running_loop().create_task(self._save(automatic))
        return await asyncio.shield(self._save_task)

    def _snapshot(self) -> tuple:
        return (self.title, self.content, self.status)

    async def _write(self) -> OpResult:
        self.word_count = markup_word_count(self.content)
        if self.chapter_id is None:
            chapter = Chapter(
                story_id=self.story_id,
                number=self.number,
                title=self.title,
                content=self.content,
                word_count=self.word_count,
                status=self.status,
            )
            return await self.store.add_chapter(self.story_id, chapter)
        update = ChapterUpdate(
            number=self.number,
            title=self.title,
            content=self.content,
            word_count=self.word_count,
            status=self.status,
        )
        return await self.store.update_chapter(self.story_id, self.chapter_id, update)

    async def _save(self, automatic: bool) -> OpResult:
        try:
            self.state = EditorState.SAVING
            saved = self._snapshot()
            result = await self._write()

            if not result.ok:
                if self.state == EditorState.SAVING:
                    self.state = EditorState.EDITING
                return result

            self.last_saved = datetime.now()
            logger.debug(
                "Chapter %s saved (%s, %d words)",
                self.chapter_id or result.value, "auto" if automatic else "manual", self.word_count,
            )

            if self.is_new:
                self.chapter_id = result.value
                # Edits made while the chapter was being created go out before closing
                while self._snapshot() != saved:
                    self._cancel_autosave()
                    saved = self._snapshot()
                    follow_up = await self._write()
                    if not follow_up.ok:
                        logger.warning("Follow-up save of new chapter %s failed", self.chapter_id)
                        break
                    self.last_saved = datetime.now()
                self.close()
                if not automatic:
                    self.notifier.success("Chapter created")
                if self._on_navigate is not None:
                    self._on_navigate(self.story_id)
                return result

            if not automatic:
                self.notifier.success("Chapter saved")
            if self.state == EditorState.SAVING:
                self.state = EditorState.EDITING
            return result
        finally:
            self._save_task = None
