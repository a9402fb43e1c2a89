from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from .config import MARKDOWN_SUFFIXES, RESERVED_FILENAME, RunMode, SourceDocument
from .errors import SelectionError


def discover(root_dir: Path) -> List[SourceDocument]:
    """Find every lesson file below root_dir, sorted by relative path."""
    if not root_dir.is_dir():
        raise SelectionError(f"Docs directory not found: {root_dir}")

    documents = []
    for path in root_dir.rglob("*"):
        if not path.is_file():
            continue
        if path.suffix.lower() not in MARKDOWN_SUFFIXES or path.name == RESERVED_FILENAME:
            continue
        relative = path.relative_to(root_dir).as_posix()
        documents.append(SourceDocument(path=path.resolve(), relative_path=relative))

    return sorted(documents, key=lambda doc: doc.relative_path)


def filter_documents(
    documents: List[SourceDocument],
    file: Optional[str] = None,
    module: Optional[str] = None,
) -> List[SourceDocument]:
    """Restrict a batch to one file or a module prefix, keeping discovery order."""
    if file:
        target = PurePosixPath(file.replace("\\", "/")).as_posix()
        return [doc for doc in documents if doc.relative_path == target]
    if module:
        prefix = module.replace("\\", "/")
        if prefix.startswith("./"):
            prefix = prefix[2:]
        return [doc for doc in documents if doc.relative_path.startswith(prefix)]
    return list(documents)


def prompt_select_document(
    documents: List[SourceDocument],
    input_fn: Callable[[str], str] = input,
) -> SourceDocument:
    """Show a numbered list and return the operator's choice."""
    if not documents:
        raise SelectionError("No files available to select.")

    print("\n📚 Available files:\n")
    for index, document in enumerate(documents, start=1):
        print(f"  {index}. {document.relative_path}")
    print()

    try:
        answer = input_fn("Select a file by number (or press Ctrl+C to exit): ").strip()
    except EOFError as e:
        raise SelectionError("No selection entered.") from e
    try:
        selection = int(answer)
    except ValueError:
        selection = 0

    if selection < 1 or selection > len(documents):
        raise SelectionError(
            f"Invalid selection: {answer}. Please enter a number between 1 and {len(documents)}."
        )
    return documents[selection - 1]


def select(
    mode: RunMode,
    documents: List[SourceDocument],
    file: Optional[str] = None,
    module: Optional[str] = None,
    input_fn: Callable[[str], str] = input,
) -> List[SourceDocument]:
    """Return the documents this run should process."""
    if mode == RunMode.INTERACTIVE:
        return [prompt_select_document(documents, input_fn)]

    selected = filter_documents(documents, file=file, module=module)
    if not selected:
        raise SelectionError("No files match the specified filter.")
    return selected
