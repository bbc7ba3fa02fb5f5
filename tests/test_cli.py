"""End-to-end tests for the click CLI against a temporary SQLite backend."""

import logging
import re

import pytest
from click.testing import CliRunner

from cli.main import cli

ID_RE = re.compile(r"ID: ([0-9a-f-]{36})")


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CliRunner with settings and credentials pointing at tmp_path."""
    monkeypatch.setenv("BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("STORYLAB_EMAIL", "ada@example.com")
    monkeypatch.setenv("STORYLAB_PASSWORD", "correct horse")
    yield CliRunner()
    for handler in logging.getLogger().handlers + logging.getLogger("gateway").handlers:
        handler.close()
    logging.getLogger().handlers.clear()
    logging.getLogger("gateway").handlers.clear()


@pytest.fixture
def account(runner):
    result = runner.invoke(cli, ["signup", "--name", "Ada"])
    assert result.exit_code == 0, result.output
    return runner


def _new_story(runner, *args):
    result = runner.invoke(cli, ["story-new", *args])
    assert result.exit_code == 0, result.output
    return ID_RE.search(result.output).group(1)


class TestAccount:
    def test_signup(self, runner):
        result = runner.invoke(cli, ["signup", "--name", "Ada"])
        assert result.exit_code == 0
        assert "Account created" in result.output
        assert "ada@example.com" in result.output

    def test_signup_twice_fails(self, account):
        result = account.invoke(cli, ["signup", "--name", "Ada"])
        assert result.exit_code == 1
        assert "already registered" in result.output

    def test_wrong_password(self, account):
        result = account.invoke(cli, ["--password", "wrong", "stories"])
        assert result.exit_code == 1
        assert "Invalid email or password" in result.output

    def test_missing_credentials(self, runner, monkeypatch):
        monkeypatch.delenv("STORYLAB_EMAIL")
        result = runner.invoke(cli, ["stories"])
        assert result.exit_code == 1
        assert "email is required" in result.output

    def test_invalid_configuration(self, runner, monkeypatch):
        monkeypatch.setenv("AUTOSAVE_DELAY_SECONDS", "0")
        result = runner.invoke(cli, ["stories"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_profile_update(self, account):
        result = account.invoke(cli, ["profile", "--bio", "Writes mysteries"])
        assert result.exit_code == 0, result.output
        assert "Profile updated" in result.output
        assert "Writes mysteries" in result.output


class TestStories:
    def test_empty_list(self, account):
        result = account.invoke(cli, ["stories"])
        assert result.exit_code == 0
        assert "No stories yet" in result.output

    def test_create_and_list(self, account):
        _new_story(account, "--title", "Test", "--genre", "Mystery")
        result = account.invoke(cli, ["stories"])
        assert result.exit_code == 0
        assert "Test" in result.output
        assert "Mystery" in result.output

    def test_blank_title_rejected(self, account):
        result = account.invoke(cli, ["story-new", "--title", "   "])
        assert result.exit_code == 1
        assert "title is required" in result.output
        assert "No stories yet" in account.invoke(cli, ["stories"]).output

    def test_status_filter(self, account):
        _new_story(account, "--title", "Drafty")
        _new_story(account, "--title", "Finished", "--status", "completed")
        result = account.invoke(cli, ["stories", "--status", "completed"])
        assert "Finished" in result.output
        assert "Drafty" not in result.output

    def test_update_and_show(self, account):
        story_id = _new_story(account, "--title", "Test")
        result = account.invoke(cli, ["story-update", story_id, "--synopsis", "A locked room"])
        assert result.exit_code == 0, result.output
        shown = account.invoke(cli, ["story-show", story_id])
        assert "A locked room" in shown.output
        assert "No chapters yet" in shown.output

    def test_show_missing_story(self, account):
        result = account.invoke(cli, ["story-show", "00000000-0000-0000-0000-000000000000"])
        assert result.exit_code == 1
        assert "No story with ID" in result.output

    def test_delete(self, account):
        story_id = _new_story(account, "--title", "Doomed")
        result = account.invoke(cli, ["story-delete", story_id, "--force"])
        assert result.exit_code == 0, result.output
        assert "No stories yet" in account.invoke(cli, ["stories"]).output

    def test_delete_cancelled(self, account):
        story_id = _new_story(account, "--title", "Kept")
        result = account.invoke(cli, ["story-delete", story_id], input="n\n")
        assert "Cancelled" in result.output
        assert "Kept" in account.invoke(cli, ["stories"]).output


class TestChapters:
    def test_write_new_chapter(self, account, tmp_path):
        story_id = _new_story(account, "--title", "Test")
        source = tmp_path / "ch1.html"
        source.write_text("<p>Hello world</p>", encoding="utf-8")

        result = account.invoke(cli, ["chapter-write", story_id, "--file", str(source)])

        assert result.exit_code == 0, result.output
        assert "Chapter created" in result.output
        assert "Chapter 1" in result.output
        shown = account.invoke(cli, ["story-show", story_id])
        assert "Chapter 1" in shown.output

    def test_rewrite_existing_chapter(self, account, tmp_path):
        story_id = _new_story(account, "--title", "Test")
        source = tmp_path / "ch.txt"
        source.write_text("one two", encoding="utf-8")
        created = account.invoke(cli, ["chapter-write", story_id, "--file", str(source)])
        assert created.exit_code == 0, created.output
        chapter_id = ID_RE.search(created.output).group(1)

        source.write_text("one two three", encoding="utf-8")
        result = account.invoke(cli, ["chapter-write", story_id, "--chapter-id", chapter_id,
                                      "--file", str(source), "--title", "Opening"])

        assert result.exit_code == 0, result.output
        assert "Chapter saved" in result.output
        assert "Opening" in result.output
        stats = account.invoke(cli, ["stats"])
        assert "Total words: 3" in stats.output
        assert "Chapters written: 1" in stats.output

    def test_write_to_missing_story(self, account, tmp_path):
        source = tmp_path / "ch.txt"
        source.write_text("words", encoding="utf-8")
        result = account.invoke(cli, ["chapter-write", "missing", "--file", str(source)])
        assert result.exit_code == 1
        assert "Story not found" in result.output


class TestCharactersAndNotes:
    def test_character_flow(self, account):
        story_id = _new_story(account, "--title", "Test")
        created = account.invoke(cli, ["character-new", "--name", "Evelyn", "--role", "antagonist",
                                       "--story", story_id])
        assert created.exit_code == 0, created.output
        character_id = ID_RE.search(created.output).group(1)

        listed = account.invoke(cli, ["characters", "--search", "eve"])
        assert "Evelyn" in listed.output

        unlinked = account.invoke(cli, ["character-unlink", story_id, character_id])
        assert unlinked.exit_code == 0, unlinked.output
        assert "Character removed from story" in unlinked.output
        assert "Evelyn" in account.invoke(cli, ["characters"]).output

    def test_clear_story_characters(self, account):
        story_id = _new_story(account, "--title", "Test")
        account.invoke(cli, ["character-new", "--name", "Evelyn", "--story", story_id])
        assert "Evelyn" in account.invoke(cli, ["story-show", story_id]).output

        result = account.invoke(cli, ["story-update", story_id, "--clear-characters"])
        assert result.exit_code == 0, result.output
        assert "Evelyn" not in account.invoke(cli, ["story-show", story_id]).output
        assert "Evelyn" in account.invoke(cli, ["characters"]).output

    def test_clear_characters_conflicts_with_character(self, account):
        story_id = _new_story(account, "--title", "Test")
        result = account.invoke(cli, ["story-update", story_id, "--clear-characters", "-c", "abc"])
        assert result.exit_code == 2
        assert "cannot be combined" in result.output

    def test_blank_character_name(self, account):
        result = account.invoke(cli, ["character-new", "--name", " "])
        assert result.exit_code == 1
        assert "name is required" in result.output

    def test_notes_with_tags(self, account):
        account.invoke(cli, ["note-new", "--title", "Magic rules", "--tags", "world, magic"])
        account.invoke(cli, ["note-new", "--title", "Twist", "--tags", "plot"])
        result = account.invoke(cli, ["notes", "--tag", "magic"])
        assert result.exit_code == 0
        assert "Magic" in result.output
        assert "Twist" not in result.output

    def test_stats(self, account):
        _new_story(account, "--title", "Test", "--status", "in-progress")
        result = account.invoke(cli, ["stats"])
        assert result.exit_code == 0
        assert "Active stories: 1" in result.output
