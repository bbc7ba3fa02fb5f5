"""Unified Rich theme and reusable UI helper functions for the CLI."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

from models.enums import ChapterStatus, CharacterRole, StoryStatus
from store.statistics import WritingStatistics
from tools.text_utils import excerpt

STORYLAB_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "muted": "dim",
    "accent": "cyan",
    "genre": "bold",
    "stat.label": "dim",
    "stat.value": "bold",
    "chapter.num": "blue",
    "character.name": "bold cyan",
})

STORY_STATUS_COLORS = {
    StoryStatus.DRAFT: "yellow",
    StoryStatus.IN_PROGRESS: "green",
    StoryStatus.PAUSED: "dim",
    StoryStatus.COMPLETED: "cyan",
}

CHAPTER_STATUS_COLORS = {
    ChapterStatus.DRAFT: "yellow",
    ChapterStatus.REVIEW: "blue",
    ChapterStatus.PUBLISHED: "green",
}

ROLE_COLORS = {
    CharacterRole.PROTAGONIST: "green",
    CharacterRole.ANTAGONIST: "red",
    CharacterRole.SUPPORTING: "blue",
    CharacterRole.OTHER: "dim",
}


def get_console() -> Console:
    """Return a Console instance with the workspace theme applied."""
    return Console(theme=STORYLAB_THEME)


def app_header(title: str = "storylab") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{title}[/]", style="dim")


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "New story").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


class RichNotifier:
    """Notifier that prints toasts to a Rich console."""

    def __init__(self, console: Console):
        self._console = console

    def success(self, message: str) -> None:
        self._console.print(f"[success]✓ {message}[/]")

    def error(self, message: str) -> None:
        self._console.print(f"[error]✗ {message}[/]")


def story_table(stories: list) -> Table:
    """Build a table listing stories with their progress."""
    table = Table(title="Stories", show_lines=True, border_style="dim")
    table.add_column("ID", style="muted", overflow="fold")
    table.add_column("Title", style="bold")
    table.add_column("Genre", style="genre")
    table.add_column("Status")
    table.add_column("Chapters", justify="right")
    table.add_column("Words", justify="right")

    for s in stories:
        color = STORY_STATUS_COLORS.get(s.status, "white")
        table.add_row(
            s.id,
            s.title,
            s.genre,
            f"[{color}]{s.status.value}[/]",
            str(len(s.chapters)),
            f"{s.word_count:,}",
        )
    return table


def story_summary_panel(story, characters: list) -> Panel:
    """Return a Panel with story summary stats.

    Args:
        story: Story with .title, .genre, .synopsis, .chapters, .word_count.
        characters: Characters linked to the story.
    """
    color = STORY_STATUS_COLORS.get(story.status, "white")
    body = (
        f"  [stat.label]Genre:[/] [genre]{story.genre or '-'}[/]  "
        f"[muted]|[/]  [stat.label]Status:[/] [{color}]{story.status.value}[/]  "
        f"[muted]|[/]  [stat.label]Started:[/] {story.start_date or '-'}\n"
        f"  [stat.label]Chapters:[/] [stat.value]{len(story.chapters)}[/]  "
        f"[muted]|[/]  [stat.label]Characters:[/] [stat.value]{len(characters)}[/]  "
        f"[muted]|[/]  [stat.label]Words:[/] [stat.value]{story.word_count:,}[/]\n"
        f"  [stat.label]Synopsis:[/] {excerpt(story.synopsis, 200)}"
    )
    return Panel(
        body,
        title=f"[bold]{story.title}[/] [muted](ID: {story.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def chapter_table(chapters: list) -> Table:
    table = Table(title="Chapters", border_style="dim")
    table.add_column("#", style="chapter.num", justify="right")
    table.add_column("Title")
    table.add_column("Words", justify="right")
    table.add_column("Status")
    table.add_column("ID", style="muted", overflow="fold")

    for ch in chapters:
        color = CHAPTER_STATUS_COLORS.get(ch.status, "white")
        table.add_row(
            str(ch.number),
            ch.title,
            f"{ch.word_count:,}",
            f"[{color}]{ch.status.value}[/]",
            ch.id,
        )
    return table


def character_cards(characters: list, story_titles: dict[str, str]) -> Table:
    """Build a Rich Table layout of character sheets.

    Args:
        characters: Character objects.
        story_titles: Mapping of story id -> title for the "Stories" column.
    """
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("Character", style="character.name")
    table.add_column("Role")
    table.add_column("Age", style="muted")
    table.add_column("Personality")
    table.add_column("Stories")
    table.add_column("ID", style="muted", overflow="fold")

    for c in characters:
        color = ROLE_COLORS.get(c.role, "white")
        stories = ", ".join(story_titles.get(sid, "?") for sid in c.story_ids)
        table.add_row(
            c.name,
            f"[{color}]{c.role.value}[/]",
            c.age,
            excerpt(c.personality, 40),
            stories or "[muted]-[/]",
            c.id,
        )
    return table


def notes_table(notes: list) -> Table:
    table = Table(title="Notes", show_lines=True, border_style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Content")
    table.add_column("Tags", style="accent")
    table.add_column("Updated", style="muted")
    table.add_column("ID", style="muted", overflow="fold")

    for n in notes:
        table.add_row(
            n.title,
            excerpt(n.content, 60),
            ", ".join(n.tags),
            (n.updated_at or "")[:10],
            n.id,
        )
    return table


def statistics_panel(stats: WritingStatistics) -> Panel:
    body = (
        f"  [stat.label]Total words:[/] [stat.value]{stats.total_words:,}[/]  "
        f"[muted]|[/]  [stat.label]Active stories:[/] [stat.value]{stats.active_stories}[/]\n"
        f"  [stat.label]Chapters written:[/] [stat.value]{stats.total_chapters}[/]  "
        f"[muted]|[/]  [stat.label]Characters created:[/] [stat.value]{stats.total_characters}[/]  "
        f"[muted]|[/]  [stat.label]Notes:[/] [stat.value]{stats.total_notes}[/]\n"
        "  [stat.label]Chapters by status:[/] "
        + "  ".join(f"{status} [stat.value]{count}[/]" for status, count in stats.chapters_by_status.items())
    )
    return Panel(body, title="[bold]Statistics[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def per_story_table(stats: WritingStatistics) -> Table:
    table = Table(title="Your stories", border_style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Chapters", justify="right")
    table.add_column("Words", justify="right", style="stat.value")
    for totals in stats.per_story:
        table.add_row(totals.title, str(totals.chapter_count), f"{totals.word_count:,}")
    return table
