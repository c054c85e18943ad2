from __future__ import annotations

import textwrap
from pathlib import Path

from tazz.tasks import (
    MAX_TASKS,
    TASK_LIST_TEMPLATE,
    TaskDescriptor,
    TaskListLoader,
    parse_task_list,
)


def test_parses_slug_and_description() -> None:
    document = "- [ ] Build feature\n      Session name: build-1\n      Description:\n        Implement X\n"

    tasks = parse_task_list(document)

    assert tasks == [TaskDescriptor(name="Build feature", slug="build-1", description="Implement X")]


def test_defaults_when_annotations_missing() -> None:
    tasks = parse_task_list("- [ ] Write Tests!\n")

    assert tasks[0].slug == "write-tests"
    assert tasks[0].description == "Work on: Write Tests!"


def test_multiline_description_stops_at_session_name() -> None:
    document = textwrap.dedent(
        """
        # Tasks

        - [ ] Refactor auth
              Description: Split the module
                into smaller pieces
                and add types
              Session name: auth-refactor
        - [ ] Docs
        """
    )

    first, second = parse_task_list(document)

    assert first.description == "Split the module into smaller pieces and add types"
    assert first.slug == "auth-refactor"
    assert second.name == "Docs"


def test_blank_line_ends_task_block() -> None:
    document = textwrap.dedent(
        """
        - [ ] One
              Description:
                first

              Session name: ignored
        """
    )

    (task,) = parse_task_list(document)

    assert task.description == "first"
    assert task.slug == "one"


def test_checked_items_and_prose_are_ignored() -> None:
    document = "Intro text\n- [x] Done already\n* [ ] wrong bullet\n- [ ] Real task\n"

    assert [task.name for task in parse_task_list(document)] == ["Real task"]


def test_truncates_to_max_tasks() -> None:
    document = "\n".join(f"- [ ] Task {index}" for index in range(12))

    tasks = parse_task_list(document)

    assert len(tasks) == MAX_TASKS
    assert tasks[-1].name == "Task 4"


def test_empty_and_malformed_documents() -> None:
    assert parse_task_list("") == []
    assert parse_task_list("- [ ]\n-[ ] nope\n   Description: orphan\n") == []


def test_parsing_is_idempotent() -> None:
    document = TASK_LIST_TEMPLATE + "\r\n- [ ] Windows line\r\n"

    assert parse_task_list(document) == parse_task_list(document)


def test_template_yields_tasks() -> None:
    slugs = [task.slug for task in parse_task_list(TASK_LIST_TEMPLATE)]

    assert slugs == ["feat-impl", "write-tests", "update-docs"]


def test_loader_handles_missing_file(tmp_path: Path) -> None:
    loader = TaskListLoader(tmp_path / "missing.md")

    assert loader.load() == []


def test_loader_reads_file(tmp_path: Path) -> None:
    path = tmp_path / "tazz-todo.md"
    path.write_text("- [ ] Ship it\n", encoding="utf-8")

    assert [task.slug for task in TaskListLoader(path).load()] == ["ship-it"]


def test_ensure_template_keeps_existing_content(tmp_path: Path) -> None:
    path = tmp_path / ".tazz" / "tazz-todo.md"
    loader = TaskListLoader(path)

    assert loader.ensure_template() == path
    assert path.read_text(encoding="utf-8") == TASK_LIST_TEMPLATE

    path.write_text("- [ ] Mine\n", encoding="utf-8")
    loader.ensure_template()
    assert path.read_text(encoding="utf-8") == "- [ ] Mine\n"


def test_colliding_slugs_get_numbered() -> None:
    document = "- [ ] Fix bug!\n- [ ] Fix bug?\n- [ ] Other\n  Session name: fix-bug\n"

    slugs = [task.slug for task in parse_task_list(document)]

    assert slugs == ["fix-bug", "fix-bug-2", "fix-bug-3"]


def test_mark_done_ticks_matching_items(tmp_path: Path) -> None:
    path = tmp_path / "tazz-todo.md"
    path.write_text(
        "# Tasks\n\n- [ ] Build\n  Session name: build-1\n\n- [ ] Docs\n- [ ] Tests\n",
        encoding="utf-8",
    )
    loader = TaskListLoader(path)

    ticked = loader.mark_done(["build-1", "tests", "unknown"])

    assert ticked == ["build-1", "tests"]
    assert path.read_text(encoding="utf-8") == (
        "# Tasks\n\n- [x] Build\n  Session name: build-1\n\n- [ ] Docs\n- [x] Tests\n"
    )
    assert [task.slug for task in loader.load()] == ["docs"]


def test_mark_done_without_file_or_matches(tmp_path: Path) -> None:
    path = tmp_path / "tazz-todo.md"
    loader = TaskListLoader(path)

    assert loader.mark_done(["build-1"]) == []
    assert not path.exists()

    path.write_text("- [ ] Docs\n", encoding="utf-8")
    assert loader.mark_done(["build-1"]) == []
    assert path.read_text(encoding="utf-8") == "- [ ] Docs\n"
