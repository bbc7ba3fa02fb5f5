"""Editor package: chapter editing sessions with debounced autosave."""

from editor.chapter_session import ChapterEditorSession

__all__ = ["ChapterEditorSession"]
