"""Tests for the delvewiki command-line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from delvewiki.annotations.anchors import TextAnchor
from delvewiki.cli import (
    _build_parser,
    _cmd_comments,
    _cmd_commit,
    _cmd_highlight,
    _cmd_history,
    _cmd_revert,
    _cmd_show,
    main,
)
from delvewiki.config import get_settings
from delvewiki.history.versions import commit
from delvewiki.storage.transactions import page_transaction

if TYPE_CHECKING:
    from pathlib import Path

    from delvewiki.pages.keys import PageKey
    from delvewiki.wiki import Wiki


def _console() -> Console:
    return Console(record=True, width=200, color_system=None)


async def _three_versions(wiki: Wiki, key: PageKey) -> None:
    await wiki.versions.commit(key, "first draft", created_by="generation")
    await wiki.versions.commit(key, "second draft", "tighten intro")
    await wiki.versions.commit(key, "third draft", "add examples")


class TestParser:
    def test_subcommands(self) -> None:
        parser = _build_parser()
        args = parser.parse_args(["--project", "physics", "history", "atoms", "--all"])
        assert (args.command, args.project, args.slug, args.all) == (
            "history",
            "physics",
            "atoms",
            True,
        )

    def test_version_must_be_int(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["show", "atoms", "latest"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])


class TestHistoryCommands:
    @pytest.mark.asyncio
    async def test_history_table(self, wiki: Wiki, page_key: PageKey) -> None:
        await _three_versions(wiki, page_key)
        await wiki.versions.revert(page_key, 2)
        con = _console()

        await _cmd_history(wiki, page_key, show_all=True, console=con)

        output = con.export_text()
        assert "tighten intro" in output
        assert "Current" in output
        assert "Reverted" in output

    @pytest.mark.asyncio
    async def test_history_default_hides_future(
        self, wiki: Wiki, page_key: PageKey
    ) -> None:
        await _three_versions(wiki, page_key)
        await wiki.versions.revert(page_key, 1)
        con = _console()

        await _cmd_history(wiki, page_key, console=con)

        output = con.export_text()
        assert "add examples" not in output
        assert "Current" in output

    @pytest.mark.asyncio
    async def test_history_shows_copy_source(
        self, wiki: Wiki, page_key: PageKey
    ) -> None:
        await wiki.versions.commit(page_key, "first draft", created_by="generation")
        async with page_transaction(wiki.store, page_key, wiki.locks) as record:
            commit(record.history, "first draft", created_by="revert", reverted_from=1)
        con = _console()

        await _cmd_history(wiki, page_key, console=con)

        assert "revert (from v1)" in con.export_text()

    @pytest.mark.asyncio
    async def test_history_unknown_page(self, wiki: Wiki, page_key: PageKey) -> None:
        con = _console()
        await _cmd_history(wiki, page_key, console=con)
        assert "No versions" in con.export_text()

    @pytest.mark.asyncio
    async def test_show_prints_content(self, wiki: Wiki, page_key: PageKey) -> None:
        await _three_versions(wiki, page_key)
        con = _console()

        await _cmd_show(wiki, page_key, 2, console=con)

        assert "second draft" in con.export_text()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("number", [9, 0])
    async def test_show_missing_version_exits(
        self, wiki: Wiki, page_key: PageKey, number: int
    ) -> None:
        await _three_versions(wiki, page_key)
        con = _console()

        with pytest.raises(SystemExit) as exc_info:
            await _cmd_show(wiki, page_key, number, console=con)

        assert exc_info.value.code == 1
        assert "Error" in con.export_text()

    @pytest.mark.asyncio
    async def test_revert(self, wiki: Wiki, page_key: PageKey) -> None:
        await _three_versions(wiki, page_key)
        con = _console()

        await _cmd_revert(wiki, page_key, 1, console=con)

        assert "Reverted" in con.export_text()
        assert await wiki.read_page(page_key) == "first draft"

    @pytest.mark.asyncio
    async def test_revert_missing_version_leaves_page(
        self, wiki: Wiki, page_key: PageKey
    ) -> None:
        await _three_versions(wiki, page_key)
        before = await wiki.store.load(page_key)

        with pytest.raises(SystemExit):
            await _cmd_revert(wiki, page_key, 42, console=_console())

        after = await wiki.store.load(page_key)
        assert after.revision == before.revision
        assert after.content == "third draft"

    @pytest.mark.asyncio
    async def test_commit(self, wiki: Wiki, page_key: PageKey) -> None:
        con = _console()
        await _cmd_commit(wiki, page_key, "body", prompt="make it", console=con)

        assert "v1" in con.export_text()
        current = await wiki.versions.current_version(page_key)
        assert current is not None
        assert current.edit_prompt == "make it"


class TestAnnotationCommands:
    @pytest.mark.asyncio
    async def test_comments_table(self, wiki: Wiki, page_key: PageKey) -> None:
        await wiki.annotations.add_page_comment(page_key, "Overall looks good")
        await wiki.annotations.add_inline_comment(
            page_key, TextAnchor(text="entanglement"), "Cite a source"
        )
        con = _console()

        await _cmd_comments(wiki, page_key, console=con)

        output = con.export_text()
        assert "Overall looks good" in output
        assert "entanglement" in output
        assert "(page)" in output

    @pytest.mark.asyncio
    async def test_no_comments(self, wiki: Wiki, page_key: PageKey) -> None:
        con = _console()
        await _cmd_comments(wiki, page_key, console=con)
        assert "No comments" in con.export_text()

    @pytest.mark.asyncio
    async def test_highlight(self, wiki: Wiki, page_key: PageKey) -> None:
        kept = await wiki.annotations.add_inline_comment(
            page_key, TextAnchor(text="entanglement"), "Cite"
        )
        lost = await wiki.annotations.add_inline_comment(
            page_key, TextAnchor(text="superposition"), "Gone"
        )
        out, err = _console(), _console()

        await _cmd_highlight(
            wiki,
            page_key,
            "<p>Quantum entanglement.</p>",
            console=out,
            errors=err,
        )

        assert f'data-comment-id="{kept.id}"' in out.export_text()
        assert lost.id in err.export_text()


class TestMain:
    """End-to-end runs through main() against the file backend."""

    @pytest.fixture(autouse=True)
    def _file_backend(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STORAGE__BACKEND", "file")
        monkeypatch.setenv("STORAGE__DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setattr("delvewiki.setup_logging", lambda **_kwargs: None)
        get_settings.cache_clear()

    def test_commit_then_revert(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "page.md"
        source.write_text("# Atoms\n", encoding="utf-8")
        main(["commit", "atoms", str(source)])
        source.write_text("# Atoms\n\nNow with electrons.\n", encoding="utf-8")
        main(["commit", "atoms", str(source), "--prompt", "add electrons"])

        main(["revert", "atoms", "1"])

        page = tmp_path / "data" / "main" / "atoms.md"
        assert page.read_text(encoding="utf-8") == "# Atoms\n"
        assert "Reverted" in capsys.readouterr().out

    def test_missing_version_exit_code(self, tmp_path: Path) -> None:
        source = tmp_path / "page.md"
        source.write_text("text", encoding="utf-8")
        main(["--project", "physics", "commit", "atoms", str(source)])

        with pytest.raises(SystemExit) as exc_info:
            main(["--project", "physics", "show", "atoms", "5"])

        assert exc_info.value.code == 1

    def test_invalid_slug(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["history", ".."])
        assert exc_info.value.code == 1
