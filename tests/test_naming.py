from __future__ import annotations

from pathlib import Path

import pytest

from tazz.errors import InvalidNameError
from tazz.naming import (
    branch_name,
    clean_slug,
    parse_process_handle,
    process_handle,
    session_id,
    slugify,
    split_session_id,
    validate_instance_name,
    worktree_dir,
)


def test_session_id_and_handle() -> None:
    assert session_id("auth") == "auth"
    assert session_id("auth", "task-1") == "auth_task-1"
    assert process_handle(session_id("auth", "task-1")) == "tazz_auth_task-1"
    assert process_handle("auth") == "tazz_auth"


@pytest.mark.parametrize(
    ("instance", "slug"),
    [
        ("auth", "task-1"),
        ("JIRA-123", "build-1"),
        ("a", "slug_with_underscores"),
        ("feature-x", None),
    ],
)
def test_handle_reverses_to_instance_and_slug(instance: str, slug: str | None) -> None:
    parsed = parse_process_handle(process_handle(session_id(instance, slug)))

    assert parsed is not None
    assert (parsed.instance, parsed.task_slug) == (instance, slug)


def test_parse_ignores_foreign_sessions() -> None:
    assert parse_process_handle("work") is None
    assert parse_process_handle("other_auth_task") is None
    assert parse_process_handle("tazz_") is None
    assert parse_process_handle("tazz_auth_") is None


def test_branch_and_worktree(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()

    assert branch_name("auth") == "feature/auth"
    assert branch_name("auth", "wip/") == "wip/auth"
    assert worktree_dir("auth", project) == tmp_path.resolve() / "auth"


@pytest.mark.parametrize("name", ["", "my_instance", "has space", "dot.name", "-lead", "co:lon"])
def test_invalid_instance_names(name: str) -> None:
    with pytest.raises(InvalidNameError):
        validate_instance_name(name)


def test_valid_instance_name_is_returned() -> None:
    assert validate_instance_name("JIRA-123") == "JIRA-123"


def test_slugify() -> None:
    assert slugify("Build feature") == "build-feature"
    assert slugify("Fix  bug (urgent)!") == "fix-bug-urgent"
    assert slugify("???") == "task"


def test_clean_slug_keeps_safe_characters() -> None:
    assert clean_slug(" build-1 ") == "build-1"
    assert clean_slug("api_v2") == "api_v2"
    assert clean_slug("v1.2: docs") == "v1-2-docs"


def test_split_session_id() -> None:
    assert split_session_id("auth") == ("auth", None)
    assert split_session_id("auth_task-1") == ("auth", "task-1")
    assert split_session_id("auth_") == ("auth", None)
