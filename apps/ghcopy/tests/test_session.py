import pytest

from ghcopy.errors import Aborted, CorruptHistory, MalformedResponse, NoRepos, SelectionMismatch
from ghcopy.models import Candidate, CandidateKind, History, HistoryEntry
from ghcopy.session import CopySession, build_candidates, is_inside, match_candidate

RAW = "https://raw.githubusercontent.com"


@pytest.fixture
def seeded_store(store):
    store.save(
        History(
            entries=[
                HistoryEntry(repo="alice/tool", file_path="src/a.rs"),
                HistoryEntry(repo="alice/web", file_path="index.html"),
            ]
        )
    )
    return store


def run(store, source, picker, workdir):
    return CopySession(store=store, source=source, picker=picker, workdir=workdir).run()


# ============ Candidates ============

def test_build_candidates_puts_history_first_without_dedup():
    history = History(entries=[HistoryEntry(repo="alice/tool", file_path="src/a.rs")])
    candidates = build_candidates(history, ["alice/web", "alice/tool"])

    assert [c.display for c in candidates] == ["[History] alice/tool: src/a.rs", "alice/web", "alice/tool"]
    assert [c.kind for c in candidates] == [
        CandidateKind.HISTORY,
        CandidateKind.REPOSITORY,
        CandidateKind.REPOSITORY,
    ]
    assert candidates[0].entry == HistoryEntry(repo="alice/tool", file_path="src/a.rs")


def test_match_candidate_by_display():
    entry = HistoryEntry(repo="alice/tool", file_path="src/a.rs")
    candidates = [Candidate.from_history(entry), Candidate.from_repository("alice/tool")]

    assert match_candidate("[History] alice/tool: src/a.rs", candidates).entry == entry
    assert match_candidate("alice/tool", candidates).kind is CandidateKind.REPOSITORY


def test_match_candidate_unknown_tagged_text_is_stale():
    with pytest.raises(Aborted) as exc_info:
        match_candidate("[History] alice/gone: x", [])
    assert exc_info.value.reason == "stale history entry"


def test_match_candidate_unknown_untagged_text_is_repository():
    candidate = match_candidate("alice/other", [])
    assert candidate == Candidate.from_repository("alice/other")


# ============ Repository branch ============

def test_repository_selection_copies_file_and_records_it(store, workdir, make_source, make_picker, make_tree):
    source = make_source(
        repositories=["alice/tool", "alice/web"],
        branches={"alice/tool": "main"},
        trees={"alice/tool": make_tree(("src/a.rs", "blob"), ("src", "tree"), ("README.md", "blob"))},
    )
    picker = make_picker("alice/tool", "src/a.rs")

    result = run(store, source, picker, workdir)

    assert picker.offered == [["alice/tool", "alice/web"], ["src/a.rs", "README.md"]]
    assert result.kind is CandidateKind.REPOSITORY
    assert result.download_url == f"{RAW}/alice/tool/main/src/a.rs"
    assert result.destination == workdir / "src" / "a.rs"
    assert (workdir / "src" / "a.rs").read_text(encoding="utf-8") == result.download_url
    assert store.load().render() == ["alice/tool: src/a.rs"]


def test_repository_already_in_history_adds_no_duplicate(seeded_store, workdir, make_source, make_picker, make_tree):
    source = make_source(
        repositories=["alice/tool"],
        branches={"alice/tool": "main"},
        trees={"alice/tool": make_tree(("src/a.rs", "blob"))},
    )
    picker = make_picker("alice/tool", "src/a.rs")

    run(seeded_store, source, picker, workdir)

    assert picker.offered[0] == [
        "[History] alice/tool: src/a.rs",
        "[History] alice/web: index.html",
        "alice/tool",
    ]
    assert seeded_store.load().render() == ["alice/tool: src/a.rs", "alice/web: index.html"]


def test_empty_repository_aborts(store, workdir, make_source, make_picker, make_tree):
    source = make_source(
        repositories=["alice/empty"],
        branches={"alice/empty": "main"},
        trees={"alice/empty": make_tree(("docs", "tree"))},
    )

    with pytest.raises(Aborted) as exc_info:
        run(store, source, make_picker("alice/empty"), workdir)

    assert exc_info.value.reason == "empty repository"
    assert not store.path.exists()


def test_no_file_selected_aborts(store, workdir, make_source, make_picker, make_tree):
    source = make_source(
        repositories=["alice/tool"],
        branches={"alice/tool": "main"},
        trees={"alice/tool": make_tree(("src/a.rs", "blob"))},
    )

    with pytest.raises(Aborted) as exc_info:
        run(store, source, make_picker("alice/tool", ""), workdir)

    assert exc_info.value.reason == "no file selected"
    assert not store.path.exists()
    assert not any(call[0] == "transfer" for call in source.calls)


def test_unknown_file_from_picker_is_mismatch(store, workdir, make_source, make_picker, make_tree):
    source = make_source(
        repositories=["alice/tool"],
        branches={"alice/tool": "main"},
        trees={"alice/tool": make_tree(("src/a.rs", "blob"))},
    )

    with pytest.raises(SelectionMismatch):
        run(store, source, make_picker("alice/tool", "src/b.rs"), workdir)


def test_malformed_tree_is_fatal(store, workdir, make_source, make_picker):
    source = make_source(
        repositories=["alice/tool"],
        branches={"alice/tool": "main"},
        trees={"alice/tool": {"message": "Not Found"}},
    )

    with pytest.raises(MalformedResponse):
        run(store, source, make_picker("alice/tool"), workdir)


# ============ History branch ============

def test_history_selection_uses_freshly_resolved_branch(seeded_store, workdir, make_source, make_picker):
    source = make_source(repositories=["alice/tool"], branches={"alice/tool": "trunk", "alice/web": "main"})
    picker = make_picker("[History] alice/tool: src/a.rs")

    result = run(seeded_store, source, picker, workdir)

    assert len(picker.offered) == 1
    assert result.kind is CandidateKind.HISTORY
    assert result.download_url == f"{RAW}/alice/tool/trunk/src/a.rs"
    assert ("default_branch", "alice/tool") in source.calls
    assert not any(call[0] == "repository_tree" for call in source.calls)
    assert (workdir / "src" / "a.rs").exists()


def test_history_selection_is_promoted_to_front(seeded_store, workdir, make_source, make_picker):
    source = make_source(repositories=["alice/tool"], branches={"alice/web": "main"})

    run(seeded_store, source, make_picker("[History] alice/web: index.html"), workdir)

    assert seeded_store.load().render() == ["alice/web: index.html", "alice/tool: src/a.rs"]


def test_stale_history_line_aborts(seeded_store, workdir, make_source, make_picker):
    source = make_source(repositories=["alice/tool"])
    before = seeded_store.path.read_bytes()

    with pytest.raises(Aborted) as exc_info:
        run(seeded_store, source, make_picker("[History] alice/gone: x.txt"), workdir)

    assert exc_info.value.reason == "stale history entry"
    assert seeded_store.path.read_bytes() == before


# ============ Aborts and failures ============

def test_empty_first_selection_leaves_history_untouched(seeded_store, workdir, make_source, make_picker):
    source = make_source(repositories=["alice/tool"])
    before = seeded_store.path.read_bytes()

    with pytest.raises(Aborted) as exc_info:
        run(seeded_store, source, make_picker(""), workdir)

    assert exc_info.value.reason == "no selection"
    assert seeded_store.path.read_bytes() == before
    assert list(workdir.iterdir()) == []


def test_download_failure_aborts_without_history_update(seeded_store, workdir, make_source, make_picker):
    source = make_source(repositories=["alice/tool"], branches={"alice/web": "main"}, fail_transfer=True)
    before = seeded_store.path.read_bytes()

    with pytest.raises(Aborted) as exc_info:
        run(seeded_store, source, make_picker("[History] alice/web: index.html"), workdir)

    assert exc_info.value.reason == "download failed"
    assert seeded_store.path.read_bytes() == before


def test_corrupt_history_stops_before_remote_calls(store, workdir, make_source, make_picker):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{", encoding="utf-8")
    source = make_source(repositories=["alice/tool"])

    with pytest.raises(CorruptHistory):
        run(store, source, make_picker("alice/tool"), workdir)

    assert source.calls == []


def test_no_repositories_is_fatal(store, workdir, make_source, make_picker):
    picker = make_picker("alice/tool")

    with pytest.raises(NoRepos):
        run(store, make_source(repositories=[]), picker, workdir)

    assert picker.offered == []


# ============ Destination paths ============

@pytest.mark.parametrize(
    "file_path, inside",
    [
        ("src/a.rs", True),
        ("README.md", True),
        ("../escape.txt", False),
        ("src/../../escape.txt", False),
        ("/etc/passwd", False),
        ("", False),
    ],
)
def test_is_inside(workdir, file_path, inside):
    assert is_inside(workdir, file_path) is inside


def test_symlink_out_of_workdir_is_not_inside(workdir, tmp_path):
    (workdir / "link").symlink_to(tmp_path)
    assert is_inside(workdir, "link/escape.txt") is False


@pytest.mark.parametrize("file_path", ["../escape.txt", "/tmp/ghcopy-escape.txt"])
def test_history_entry_outside_workdir_is_refused(store, workdir, make_source, make_picker, file_path):
    store.save(History(entries=[HistoryEntry(repo="alice/tool", file_path=file_path)]))
    before = store.path.read_bytes()
    source = make_source(repositories=["alice/tool"], branches={"alice/tool": "main"})

    with pytest.raises(Aborted) as exc_info:
        run(store, source, make_picker(f"[History] alice/tool: {file_path}"), workdir)

    assert exc_info.value.reason == "stale history entry"
    assert source.transfers == []
    assert store.path.read_bytes() == before
    assert not (workdir.parent / "escape.txt").exists()


def test_tree_path_outside_workdir_is_refused(store, workdir, make_source, make_picker, make_tree):
    source = make_source(
        repositories=["alice/tool"],
        branches={"alice/tool": "main"},
        trees={"alice/tool": make_tree(("../escape.txt", "blob"))},
    )

    with pytest.raises(Aborted) as exc_info:
        run(store, source, make_picker("alice/tool", "../escape.txt"), workdir)

    assert exc_info.value.reason.startswith("unsafe destination path")
    assert source.transfers == []
    assert not store.path.exists()
