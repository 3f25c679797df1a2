"""LangGraph workflow for one copy run.

Flow:

    load_history -> build_candidates -> choose
        choose --history-->    resolve_history ---------------> transfer
        choose --repository--> list_files -> choose_file ----> transfer
    transfer -> update_history -> END

Any node may raise a CopyError; it propagates out of `CopySession.run` and
the history file is left as it was.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import TypedDict

from langgraph.graph import END, StateGraph

from .errors import Aborted, SelectionMismatch, SourceError
from .history import HistoryStore
from .models import HISTORY_TAG, Candidate, CandidateKind, CopyResult, History, ResolvedFile
from .source import Picker, RepositorySource
from .tree import raw_url, resolve_tree

logger = logging.getLogger(__name__)


class CopyState(TypedDict, total=False):
    """Workflow state."""
    workdir: Path
    history: History
    candidates: list[Candidate]
    selection: Candidate
    repository: str
    files: list[ResolvedFile]
    file_path: str
    download_url: str
    destination: Path
    result: CopyResult


def build_candidates(history: History, repositories: list[str]) -> list[Candidate]:
    """History lines first (stored order), then repositories (lister order)."""
    return [Candidate.from_history(entry) for entry in history.entries] + [
        Candidate.from_repository(name) for name in repositories
    ]


def match_candidate(choice: str, candidates: list[Candidate]) -> Candidate:
    """
    Map picker output back to the candidate it came from.

    Text that matches nothing is classified by the history tag alone: tagged
    text is a stale history line, anything else is taken as a repository
    identifier.
    """
    for candidate in candidates:
        if candidate.display == choice:
            return candidate
    if choice.startswith(HISTORY_TAG):
        logger.error("Selected history entry not found: %s", choice)
        raise Aborted("stale history entry")
    return Candidate.from_repository(choice)


def is_inside(workdir: Path, file_path: str) -> bool:
    """True if file_path is relative and stays under workdir."""
    relative = PurePosixPath(file_path)
    if not file_path or relative.is_absolute() or ".." in relative.parts:
        return False
    return (workdir / relative).resolve().is_relative_to(workdir.resolve())


class CopySession:
    """Runs the select -> download -> remember pipeline once."""

    def __init__(
        self,
        store: HistoryStore,
        source: RepositorySource,
        picker: Picker,
        workdir: str | Path | None = None,
    ):
        self.store = store
        self.source = source
        self.picker = picker
        self.workdir = Path(workdir) if workdir else Path.cwd()
        self.app = self.build_workflow().compile()

    # ============ Nodes ============

    def load_history_node(self, state: CopyState) -> CopyState:
        history = self.store.load()
        logger.info("[HISTORY] %d entries", len(history.entries))
        return {"history": history}

    def build_candidates_node(self, state: CopyState) -> CopyState:
        user = self.source.default_user()
        repositories = self.source.repository_names(user)
        candidates = build_candidates(state["history"], repositories)
        logger.info(
            "[SELECT] %d candidates (%d history, %d repositories)",
            len(candidates), len(state["history"].entries), len(repositories),
        )
        return {"candidates": candidates}

    def choose_node(self, state: CopyState) -> CopyState:
        candidates = state["candidates"]
        choice = self.picker.pick_one([c.display for c in candidates])
        if not choice:
            raise Aborted("no selection")
        selection = match_candidate(choice, candidates)
        logger.info("[SELECT] %s: %s", selection.kind.value, selection.repository)
        return {"selection": selection, "repository": selection.repository}

    def resolve_history_node(self, state: CopyState) -> CopyState:
        entry = state["selection"].entry
        if not is_inside(state["workdir"], entry.file_path):
            logger.error("History entry points outside the working directory: %s", entry.display)
            raise Aborted("stale history entry")
        # branch may have been renamed since the entry was recorded
        branch = self.source.default_branch(entry.repo)
        return {
            "file_path": entry.file_path,
            "download_url": raw_url(entry.repo, branch, entry.file_path),
        }

    def list_files_node(self, state: CopyState) -> CopyState:
        repository = state["repository"]
        branch = self.source.default_branch(repository)
        raw = self.source.repository_tree(repository, branch)
        files = resolve_tree(raw, repository, branch)
        if not files:
            logger.error("No files found in %s", repository)
            raise Aborted("empty repository")
        logger.info("[SELECT] %d files in %s@%s", len(files), repository, branch)
        return {"files": files}

    def choose_file_node(self, state: CopyState) -> CopyState:
        files = state["files"]
        choice = self.picker.pick_one([f.display_name for f in files])
        if not choice:
            raise Aborted("no file selected")
        for resolved in files:
            if resolved.display_name == choice:
                return {"file_path": resolved.display_name, "download_url": resolved.download_url}
        raise SelectionMismatch(f"Picker returned a file that was not offered: {choice}")

    def transfer_node(self, state: CopyState) -> CopyState:
        if not is_inside(state["workdir"], state["file_path"]):
            raise Aborted(f"unsafe destination path: {state['file_path']}")
        destination = state["workdir"] / state["file_path"]
        logger.info("[COPY] %s -> %s", state["download_url"], destination)
        try:
            self.source.transfer(state["download_url"], destination)
        except SourceError as e:
            logger.error("[COPY] %s", e)
            raise Aborted("download failed") from e
        return {"destination": destination}

    def update_history_node(self, state: CopyState) -> CopyState:
        history = self.store.add_entry(state["history"], state["repository"], state["file_path"])
        result = CopyResult(
            repository=state["repository"],
            file_path=state["file_path"],
            download_url=state["download_url"],
            destination=state["destination"],
            kind=state["selection"].kind,
        )
        return {"history": history, "result": result}

    # ============ Workflow ============

    @staticmethod
    def route_selection(state: CopyState) -> str:
        return state["selection"].kind.value

    def build_workflow(self) -> StateGraph:
        wf = StateGraph(CopyState)

        wf.add_node("load_history", self.load_history_node)
        wf.add_node("build_candidates", self.build_candidates_node)
        wf.add_node("choose", self.choose_node)
        wf.add_node("resolve_history", self.resolve_history_node)
        wf.add_node("list_files", self.list_files_node)
        wf.add_node("choose_file", self.choose_file_node)
        wf.add_node("transfer", self.transfer_node)
        wf.add_node("update_history", self.update_history_node)

        wf.set_entry_point("load_history")
        wf.add_edge("load_history", "build_candidates")
        wf.add_edge("build_candidates", "choose")
        wf.add_conditional_edges(
            "choose",
            self.route_selection,
            {
                CandidateKind.HISTORY.value: "resolve_history",
                CandidateKind.REPOSITORY.value: "list_files",
            },
        )
        wf.add_edge("resolve_history", "transfer")
        wf.add_edge("list_files", "choose_file")
        wf.add_edge("choose_file", "transfer")
        wf.add_edge("transfer", "update_history")
        wf.add_edge("update_history", END)

        return wf

    def run(self) -> CopyResult:
        """Run the workflow; raises CopyError on any abort or failure."""
        logger.info("Copy session started in %s", self.workdir)
        final = self.app.invoke({"workdir": self.workdir})
        result = final["result"]
        logger.info("Copy session done: %s: %s", result.repository, result.file_path)
        return result
