from __future__ import annotations

from pathlib import Path

from intellibuild.model import Branch, ChangeSet, ScanCandidates
from intellibuild.selector import intersect_dirty, select_builds

KW = dict(project_extension="cbproj", source_extension="cpp")


def _tree(root: Path) -> tuple[str, str]:
    a = root / "app" / "A.cbproj"
    b = root / "lib" / "B.cbproj"
    a.parent.mkdir(parents=True)
    b.parent.mkdir(parents=True)
    a.write_text('<CppCompile Include="x.cpp"/>\n<CppCompile Include="y.cpp"/>\n', encoding="utf-8")
    b.write_text('<CppCompile Include="z.cpp"/>\n', encoding="utf-8")
    return str(a.resolve()), str(b.resolve())


def test_incremental_selects_project_with_overlapping_source(tmp_path: Path) -> None:
    cache = {"A.cbproj": ["x.cpp", "y.cpp"]}

    sel = select_builds(tmp_path, ChangeSet(sources=["y.cpp"]), cache, **KW)

    assert sel.branch is Branch.INCREMENTAL
    assert sel.dirty == {"A.cbproj": ["y.cpp"]}
    assert sel.dependency_map == cache


def test_incremental_without_overlap_selects_nothing(tmp_path: Path) -> None:
    cache = {"A.cbproj": ["x.cpp", "y.cpp"]}
    sel = select_builds(tmp_path, ChangeSet(sources=["z.cpp"]), cache, **KW)
    assert sel.branch is Branch.INCREMENTAL
    assert sel.dirty == {}


def test_incremental_selection_is_idempotent(tmp_path: Path) -> None:
    cache = {"A.cbproj": ["x.cpp", "y.cpp"], "B.cbproj": ["y.cpp"], "C.cbproj": []}
    changes = ChangeSet(sources=["y.cpp", "q.cpp"])

    first = select_builds(tmp_path, changes, cache, **KW)
    second = select_builds(tmp_path, changes, cache, **KW)

    assert first.dirty == second.dirty == {"A.cbproj": ["y.cpp"], "B.cbproj": ["y.cpp"]}


def test_project_without_references_is_never_selected_incrementally() -> None:
    assert intersect_dirty({"Empty.cbproj": []}, ["x.cpp"]) == {}


def test_changed_project_file_forces_full_rescan(tmp_path: Path) -> None:
    a, b = _tree(tmp_path)
    stale_cache = {"/elsewhere/Old.cbproj": ["y.cpp"]}

    sel = select_builds(
        tmp_path,
        ChangeSet(sources=["y.cpp", "z.cpp"], projects=["A.cbproj"]),
        stale_cache,
        **KW,
    )

    assert sel.branch is Branch.REBUILD
    # replaced wholesale, including the project that did not change
    assert sel.dependency_map == {a: ["y.cpp"], b: ["z.cpp"]}
    assert sel.dirty == {a: ["y.cpp"], b: ["z.cpp"]}


def test_rebuild_keeps_entry_for_projects_with_no_hits(tmp_path: Path) -> None:
    a, b = _tree(tmp_path)

    sel = select_builds(tmp_path, ChangeSet(sources=["x.cpp"], projects=["B.cbproj"]), {}, **KW)

    assert sel.dependency_map == {a: ["x.cpp"], b: []}
    assert sel.dirty == {a: ["x.cpp"]}


def test_missing_cache_takes_rebuild_branch_without_project_changes(tmp_path: Path) -> None:
    a, b = _tree(tmp_path)

    sel = select_builds(tmp_path, ChangeSet(sources=["x.cpp"]), None, **KW)

    assert sel.branch is Branch.REBUILD
    assert set(sel.dependency_map) == {a, b}
    assert sel.dirty == {a: ["x.cpp"]}


def test_force_rescan_takes_rebuild_branch(tmp_path: Path) -> None:
    a, b = _tree(tmp_path)
    sel = select_builds(tmp_path, ChangeSet(), {a: ["x.cpp"]}, force_rescan=True, **KW)
    assert sel.branch is Branch.REBUILD
    assert sel.dependency_map == {a: [], b: []}
    assert sel.dirty == {}


def test_tree_candidates_build_a_complete_map(tmp_path: Path) -> None:
    a, b = _tree(tmp_path)
    src = tmp_path / "src"
    src.mkdir()
    for name in ("x.cpp", "y.cpp", "z.cpp", "unused.cpp"):
        (src / name).write_text("", encoding="utf-8")

    sel = select_builds(
        tmp_path,
        ChangeSet(sources=["x.cpp"]),
        None,
        candidates=ScanCandidates.TREE,
        **KW,
    )

    assert sel.dependency_map == {a: ["x.cpp", "y.cpp"], b: ["z.cpp"]}
    assert sel.dirty == {a: ["x.cpp"]}

    # a later incremental run can now see a change the first run never scanned for
    later = select_builds(tmp_path, ChangeSet(sources=["z.cpp"]), sel.dependency_map, **KW)
    assert later.dirty == {b: ["z.cpp"]}
