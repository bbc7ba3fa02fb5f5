"""CLI entry point for StoryLab, a writing workspace.

Usage:
  storylab signup --name "Ada"          create an account
  storylab stories                      list your stories
  storylab story-new --title "..."      start a new story
  storylab chapter-write STORY --file   write or rewrite a chapter
  storylab stats                        writing statistics
  storylab --help                       all commands

Every command except ``signup`` signs in with ``--email``/``--password``
(or STORYLAB_EMAIL / STORYLAB_PASSWORD), which loads the workspace.
"""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional

# Ensure UTF-8 output on Windows so Rich can print status glyphs
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

import click
from rich.panel import Panel

from cli.theme import (
    RichNotifier,
    app_header,
    chapter_table,
    character_cards,
    command_panel,
    get_console,
    notes_table,
    per_story_table,
    statistics_panel,
    story_summary_panel,
    story_table,
    success_panel,
)
from config.exceptions import AuthError, EditorError, StoryLabError, ValidationError
from config.logging_config import setup_logging
from config.settings import Settings, load_settings
from editor.chapter_session import ChapterEditorSession
from gateway import create_gateway
from models.character import Character
from models.enums import ChapterStatus, CharacterRole, ErrorReason, StoryStatus
from models.note import Note
from models.result import OpResult
from models.story import Story
from models.updates import UNSET, ProfileUpdate, StoryUpdate
from session.provider import SessionProvider
from store.app_store import AppDataStore
from store.statistics import compute_statistics
from tools.validation import parse_tags, require_text

console = get_console()

STATUS_CHOICES = click.Choice([s.value for s in StoryStatus])
CHAPTER_STATUS_CHOICES = click.Choice([s.value for s in ChapterStatus])
ROLE_CHOICES = click.Choice([r.value for r in CharacterRole])


def _init_logging(verbose: bool):
    """Configure logging based on verbosity.

    Log records go to the rotating files; the console only shows them
    with ``--verbose`` so they do not interleave with the tables.
    """
    level = logging.DEBUG if verbose else logging.INFO
    settings = load_settings()
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


@dataclass
class Workspace:
    """Everything a command needs once the user is signed in."""
    settings: Settings
    session: SessionProvider
    store: AppDataStore
    notifier: RichNotifier


def _build_workspace() -> Workspace:
    settings = load_settings()
    gateway = create_gateway(settings)
    notifier = RichNotifier(console)
    session = SessionProvider(gateway)
    store = AppDataStore(gateway, session, notifier)
    return Workspace(settings=settings, session=session, store=store, notifier=notifier)


def _missing(message: str) -> OpResult:
    console.print(f"[error]{message}[/]")
    return OpResult.failure(ErrorReason.NOT_FOUND, message)


def _run(ctx: click.Context, action: Callable[[Workspace], Awaitable[Optional[OpResult]]]):
    """Sign in, then run ``action(workspace)`` on a single event loop.

    Validation and identity failures print an error and exit 1, as does
    any failed ``OpResult`` returned by the action.
    """
    email = ctx.obj.get("email")
    password = ctx.obj.get("password")

    async def main() -> Optional[OpResult]:
        workspace = _build_workspace()
        try:
            # Signing in loads every collection into the store
            await workspace.session.sign_in(email or "", password or "")
            return await action(workspace)
        finally:
            workspace.store.close()

    try:
        result = asyncio.run(main())
    except (ValidationError, AuthError, EditorError) as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)
    except StoryLabError as e:
        console.print(f"[error]{e}[/]")
        sys.exit(1)

    if result is not None and not result.ok:
        sys.exit(1)
    if result is not None and result.stale:
        console.print("[warning]Saved, but reloading failed; run the command again to see the latest data.[/]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--email", "-e", envvar="STORYLAB_EMAIL", default=None, help="Account email")
@click.option("--password", "-p", envvar="STORYLAB_PASSWORD", default=None, help="Account password")
@click.pass_context
def cli(ctx, verbose, email, password):
    """StoryLab: stories, chapters, characters and notes in one workspace.

    \b
    Credentials come from --email/--password or from the
    STORYLAB_EMAIL and STORYLAB_PASSWORD environment variables:
      storylab -e ada@example.com -p secret stories
    """
    try:
        _init_logging(verbose)
    except ValidationError as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)
    ctx.ensure_object(dict)
    ctx.obj["email"] = email
    ctx.obj["password"] = password


# ---- Account ----


@cli.command()
@click.option("--name", "-n", required=True, help="Display name")
@click.pass_context
def signup(ctx, name):
    """Create an account with the group's --email and --password."""
    email = ctx.obj.get("email")
    password = ctx.obj.get("password")

    async def _signup():
        workspace = _build_workspace()
        try:
            return await workspace.session.sign_up(name, email or "", password or "")
        finally:
            workspace.store.close()

    try:
        user = asyncio.run(_signup())
    except (ValidationError, AuthError) as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)

    console.print(success_panel(
        "Account created",
        f"  [stat.label]Name:[/] [bold]{user.name}[/]\n"
        f"  [stat.label]Email:[/] {user.email}\n"
        f"  [stat.label]ID:[/] [muted]{user.id}[/]",
    ))


@cli.command()
@click.option("--name", default=None, help="New display name")
@click.option("--bio", default=None, help="New bio")
@click.option("--avatar-url", default=None, help="New avatar URL")
@click.pass_context
def profile(ctx, name, bio, avatar_url):
    """Show your profile, or update it when any option is given."""

    async def _profile(ws: Workspace):
        if name is not None or bio is not None or avatar_url is not None:
            update = ProfileUpdate(
                name=require_text(name, "name") if name is not None else UNSET,
                bio=bio if bio is not None else UNSET,
                avatar_url=avatar_url if avatar_url is not None else UNSET,
            )
            result = await ws.session.update_profile(update)
            if not result.ok:
                ws.notifier.error(result.message)
                return result
            ws.notifier.success("Profile updated")

        user = ws.session.user
        console.print(command_panel("Profile", {
            "Name": user.name,
            "Email": user.email,
            "Bio": user.bio or "-",
            "Avatar": user.avatar_url or "-",
        }))
        return None

    _run(ctx, _profile)


# ---- Stories ----


@cli.command()
@click.option("--status", "-s", type=STATUS_CHOICES, default=None, help="Only stories with this status")
@click.pass_context
def stories(ctx, status):
    """List your stories, newest first."""

    async def _list(ws: Workspace):
        selected = ws.store.stories_by_status(StoryStatus(status) if status else None)
        console.print(app_header())
        if not selected:
            console.print("[muted]No stories yet. Create one with: storylab story-new --title \"...\"[/]")
            return None
        console.print(story_table(selected))
        return None

    _run(ctx, _list)


@cli.command(name="story-new")
@click.option("--title", "-t", required=True, help="Story title")
@click.option("--genre", "-g", default="", help="Genre")
@click.option("--synopsis", default="", help="Short synopsis")
@click.option("--status", "-s", type=STATUS_CHOICES, default=StoryStatus.DRAFT.value)
@click.option("--start-date", default="", help="Start date (YYYY-MM-DD)")
@click.option("--cover-image", default=None, help="Cover image URL")
@click.option("--character", "-c", "character_ids", multiple=True, help="Character id to link (repeatable)")
@click.pass_context
def story_new(ctx, title, genre, synopsis, status, start_date, cover_image, character_ids):
    """Start a new story."""

    async def _create(ws: Workspace):
        story = Story(
            title=require_text(title, "title"),
            genre=genre.strip(),
            synopsis=synopsis.strip(),
            status=StoryStatus(status),
            start_date=start_date,
            cover_image=cover_image,
            characters=list(character_ids),
        )
        result = await ws.store.add_story(story)
        if result.ok:
            console.print(success_panel("Story created", f"  [bold]{story.title}[/] [muted](ID: {result.value})[/]"))
        return result

    _run(ctx, _create)


@cli.command(name="story-show")
@click.argument("story_id")
@click.pass_context
def story_show(ctx, story_id):
    """Show a story with its chapters and characters."""

    async def _show(ws: Workspace):
        story = ws.store.get_story(story_id)
        if story is None:
            return _missing(f"No story with ID {story_id}")
        characters = ws.store.characters_for_story(story_id)
        console.print(story_summary_panel(story, characters))
        if story.chapters:
            console.print(chapter_table(story.chapters))
        else:
            console.print("[muted]No chapters yet.[/]")
        if characters:
            titles = {s.id: s.title for s in ws.store.stories}
            console.print(character_cards(characters, titles))
        return None

    _run(ctx, _show)


@cli.command(name="story-update")
@click.argument("story_id")
@click.option("--title", "-t", default=None)
@click.option("--genre", "-g", default=None)
@click.option("--synopsis", default=None)
@click.option("--status", "-s", type=STATUS_CHOICES, default=None)
@click.option("--start-date", default=None)
@click.option("--notes", default=None, help="Free-form story notes")
@click.option("--character", "-c", "character_ids", multiple=True,
              help="Replace linked characters (repeatable)")
@click.option("--clear-characters", is_flag=True, help="Unlink every character from the story")
@click.pass_context
def story_update(ctx, story_id, title, genre, synopsis, status, start_date, notes, character_ids,
                 clear_characters):
    """Change only the given fields of a story."""
    if clear_characters and character_ids:
        raise click.UsageError("--character and --clear-characters cannot be combined")

    def given(value):
        return UNSET if value is None else value

    async def _update(ws: Workspace):
        if ws.store.get_story(story_id) is None:
            return _missing(f"No story with ID {story_id}")
        update = StoryUpdate(
            title=require_text(title, "title") if title is not None else UNSET,
            genre=given(genre),
            synopsis=given(synopsis),
            status=StoryStatus(status) if status else UNSET,
            start_date=given(start_date),
            notes=given(notes),
            characters=[] if clear_characters else (list(character_ids) or UNSET),
        )
        result = await ws.store.update_story(story_id, update)
        if result.ok:
            ws.notifier.success("Story updated")
        return result

    _run(ctx, _update)


@cli.command(name="story-delete")
@click.argument("story_id")
@click.option("--force", "-f", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def story_delete(ctx, story_id, force):
    """Delete a story and all its chapters."""

    async def _delete(ws: Workspace):
        story = ws.store.get_story(story_id)
        if story is None:
            return _missing(f"No story with ID {story_id}")

        console.print(Panel(
            f"  [stat.label]Story:[/] [bold]{story.title}[/] [muted](ID: {story_id})[/]\n"
            f"  [error]Deletes {len(story.chapters)} chapter(s) and "
            f"{story.word_count:,} words.[/]",
            title="[error]Delete story[/]",
            border_style="red",
            padding=(0, 2),
        ))
        if not force and not click.confirm("Delete? This cannot be undone", default=False):
            console.print("[warning]Cancelled[/]")
            return None

        result = await ws.store.delete_story(story_id)
        if result.ok:
            ws.notifier.success(f"Deleted '{story.title}'")
        return result

    _run(ctx, _delete)


# ---- Chapters ----


@cli.command(name="chapter-write")
@click.argument("story_id")
@click.option("--chapter-id", default=None, help="Existing chapter to rewrite (omit to create one)")
@click.option("--file", "-f", "source", required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Chapter text or HTML markup")
@click.option("--title", "-t", default=None, help="Chapter title")
@click.option("--status", "-s", type=CHAPTER_STATUS_CHOICES, default=None)
@click.pass_context
def chapter_write(ctx, story_id, chapter_id, source, title, status):
    """Write a chapter's content from a file.

    \b
    Without --chapter-id a new chapter is created with the next number.
    """
    markup = source.read_text(encoding="utf-8")

    async def _write(ws: Workspace):
        session = ChapterEditorSession(
            ws.store,
            story_id,
            chapter_id=chapter_id,
            autosave_delay=ws.settings.autosave_delay_seconds,
            default_title=ws.settings.default_chapter_title,
        )
        async with session:
            session.edit_content(markup)
            if title is not None:
                session.set_title(require_text(title, "title"))
            if status is not None:
                session.set_status(ChapterStatus(status))
            result = await session.save()

        if result.ok:
            console.print(command_panel(f"Chapter {session.number}", {
                "Title": session.title,
                "Words": f"{session.word_count:,}",
                "Status": session.status.value,
                "ID": session.chapter_id,
            }))
        return result

    _run(ctx, _write)


@cli.command(name="chapter-delete")
@click.argument("story_id")
@click.argument("chapter_id")
@click.pass_context
def chapter_delete(ctx, story_id, chapter_id):
    """Delete one chapter of a story."""

    async def _delete(ws: Workspace):
        if ws.store.get_chapter(story_id, chapter_id) is None:
            return _missing(f"No chapter with ID {chapter_id} in story {story_id}")
        result = await ws.store.delete_chapter(story_id, chapter_id)
        if result.ok:
            ws.notifier.success("Chapter deleted")
        return result

    _run(ctx, _delete)


# ---- Characters ----


@cli.command()
@click.option("--search", "-q", default=None, help="Filter by name")
@click.pass_context
def characters(ctx, search):
    """List your characters."""

    async def _list(ws: Workspace):
        selected = ws.store.search_characters(search) if search else list(ws.store.characters)
        if not selected:
            console.print("[muted]No characters found.[/]")
            return None
        titles = {s.id: s.title for s in ws.store.stories}
        console.print(character_cards(selected, titles))
        return None

    _run(ctx, _list)


@cli.command(name="character-new")
@click.option("--name", "-n", required=True)
@click.option("--role", "-r", type=ROLE_CHOICES, default=CharacterRole.OTHER.value)
@click.option("--age", default="")
@click.option("--personality", default="")
@click.option("--backstory", default="")
@click.option("--physical-description", default="")
@click.option("--relationships", default="")
@click.option("--story", "-s", "story_ids", multiple=True, help="Story id to link (repeatable)")
@click.pass_context
def character_new(ctx, name, role, age, personality, backstory, physical_description,
                  relationships, story_ids):
    """Create a character sheet."""

    async def _create(ws: Workspace):
        character = Character(
            name=require_text(name, "name"),
            role=CharacterRole(role),
            age=age,
            personality=personality,
            backstory=backstory,
            physical_description=physical_description,
            relationships=relationships,
            story_ids=list(story_ids),
        )
        result = await ws.store.add_character(character)
        if result.ok:
            console.print(success_panel(
                "Character created",
                f"  [character.name]{character.name}[/] [muted](ID: {result.value})[/]",
            ))
        return result

    _run(ctx, _create)


@cli.command(name="character-unlink")
@click.argument("story_id")
@click.argument("character_id")
@click.pass_context
def character_unlink(ctx, story_id, character_id):
    """Remove a character from a story; the sheet itself is kept."""

    async def _unlink(ws: Workspace):
        result = await ws.store.remove_character_from_story(story_id, character_id)
        if result.ok:
            ws.notifier.success("Character removed from story")
        return result

    _run(ctx, _unlink)


@cli.command(name="character-delete")
@click.argument("character_id")
@click.pass_context
def character_delete(ctx, character_id):
    async def _delete(ws: Workspace):
        if ws.store.get_character(character_id) is None:
            return _missing(f"No character with ID {character_id}")
        result = await ws.store.delete_character(character_id)
        if result.ok:
            ws.notifier.success("Character deleted")
        return result

    _run(ctx, _delete)


# ---- Notes ----


@cli.command()
@click.option("--tag", default=None, help="Only notes with this tag")
@click.pass_context
def notes(ctx, tag):
    """List your notes, most recently updated first."""

    async def _list(ws: Workspace):
        selected = ws.store.notes_with_tag(tag) if tag else list(ws.store.notes)
        if not selected:
            console.print("[muted]No notes found.[/]")
            return None
        console.print(notes_table(selected))
        return None

    _run(ctx, _list)


@cli.command(name="note-new")
@click.option("--title", "-t", required=True)
@click.option("--content", "-c", default="")
@click.option("--tags", default="", help="Comma-separated tags")
@click.pass_context
def note_new(ctx, title, content, tags):
    async def _create(ws: Workspace):
        note = Note(title=require_text(title, "title"), content=content, tags=parse_tags(tags))
        result = await ws.store.add_note(note)
        if result.ok:
            ws.notifier.success(f"Note '{note.title}' created")
        return result

    _run(ctx, _create)


@cli.command(name="note-delete")
@click.argument("note_id")
@click.pass_context
def note_delete(ctx, note_id):
    async def _delete(ws: Workspace):
        if ws.store.get_note(note_id) is None:
            return _missing(f"No note with ID {note_id}")
        result = await ws.store.delete_note(note_id)
        if result.ok:
            ws.notifier.success("Note deleted")
        return result

    _run(ctx, _delete)


# ---- Statistics ----


@cli.command()
@click.pass_context
def stats(ctx):
    """Show writing statistics across all stories."""

    async def _stats(ws: Workspace):
        totals = compute_statistics(ws.store.stories, ws.store.characters, ws.store.notes)
        console.print(app_header())
        console.print(statistics_panel(totals))
        if totals.per_story:
            console.print(per_story_table(totals))
        return None

    _run(ctx, _stats)


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
