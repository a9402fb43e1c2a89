from __future__ import annotations

import argparse
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from .audit import audit_presentations
from .config import DocumentStatus, GeneratorBackend, PipelineConfig, PipelineState, RunMode
from .discovery import discover, select
from .errors import ConfigurationError, ManifestError, PipelineError, SelectionError
from .generator import build_generator
from .io import load_manifest, save_merged_manifest, validate_environment
from .stages import BatchSummary, run_batch


def display_banner(state: PipelineState, mode: RunMode) -> None:
    config = state.config
    print("\n" + "=" * 65)
    print("  🎭 LESSON PRESENTATION GENERATOR")
    print("=" * 65)
    state.log(f"📂 Docs directory: {config.docs_dir}")
    state.log(f"📝 Output directory: {config.output_dir}")
    state.log(f"🌐 Static directory: {config.static_output_dir}")
    if mode != RunMode.AUDIT:
        state.log(f"🤖 Backend: {config.backend.value} ({config.resolved_model})")
        if config.timeout:
            state.log(f"⏳ Generator timeout: {config.timeout:g}s")
    state.log(f"📋 Mode: {mode.value}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate validated presentation decks from lesson markdown")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--all", action="store_true", help="Process every lesson")
    scope.add_argument("--file", help="Process one lesson, by path relative to the docs directory")
    scope.add_argument("--module", help="Process lessons whose relative path starts with this prefix")
    parser.add_argument("--debug", action="store_true", help="Save the exact prompt next to each artifact")
    parser.add_argument("--audit", action="store_true", help="Re-check published presentations without generating")
    parser.add_argument("--backend", choices=[b.value for b in GeneratorBackend], help="Generator backend")
    parser.add_argument("--model", help="Model name for the generator backend")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for one generation (default: no limit)")
    parser.add_argument("--root", help="Project root that default paths resolve against (default: cwd)")
    return parser.parse_args(argv)


def run_mode(args: argparse.Namespace) -> RunMode:
    if args.audit:
        return RunMode.AUDIT
    if args.all or args.file or args.module:
        return RunMode.BATCH
    return RunMode.INTERACTIVE


def _audit_prefix(args: argparse.Namespace) -> Optional[str]:
    if args.file:
        return PurePosixPath(args.file.replace("\\", "/")).with_suffix(".json").as_posix()
    return args.module


def _plural(count: int) -> str:
    return f"{count} file{'s' if count != 1 else ''}"


def display_summary(state: PipelineState, summary: BatchSummary) -> None:
    state.log("\n" + "=" * 60)
    state.log("✨ Generation complete!")
    state.log(f"   Success: {_plural(summary.succeeded)}")
    if summary.skipped:
        state.log(f"   Skipped: {_plural(summary.skipped)}")
    if summary.failed:
        state.log(f"   Errors: {_plural(summary.failed)}")
        for result in summary.results:
            if result.status == DocumentStatus.FAILED:
                state.log(f"     - {result.document.relative_path}")
    state.log(f"📋 Manifest: {state.config.manifest_path}")
    state.log(f"🌐 Static manifest: {state.config.static_manifest_path}")
    state.log("=" * 60)


def main(
    argv: Optional[List[str]] = None,
    input_fn: Callable[[str], str] = input,
    generator: Optional[object] = None,
) -> int:
    args = parse_args(argv)
    mode = run_mode(args)
    try:
        config = PipelineConfig.from_root(
            Path(args.root).expanduser() if args.root else Path.cwd(),
            backend=GeneratorBackend(args.backend) if args.backend else None,
            model=args.model,
            timeout=args.timeout,
            debug=args.debug,
        )
    except ConfigurationError as e:
        print("\n❌ Invalid configuration:")
        print(f"   • {e}")
        return 1
    state = PipelineState(config=config)
    display_banner(state, mode)

    if mode == RunMode.AUDIT:
        audit = audit_presentations(state, prefix=_audit_prefix(args))
        state.save_log()
        return 0 if audit.ok else 1

    if generator is None:
        valid, missing = validate_environment(config.backend)
        if not valid:
            print("\n❌ Missing requirements:")
            for item in missing:
                print(f"   • {item}")
            return 1

    try:
        documents = discover(config.docs_dir)
        if not documents:
            raise SelectionError("No markdown files found.")
        state.log(f"\n📚 Found {len(documents)} source file{'s' if len(documents) != 1 else ''}")

        state.manifest = load_manifest(config.manifest_path)
        selected = select(mode, documents, file=args.file, module=args.module, input_fn=input_fn)
    except PipelineError as e:
        state.log(f"\n❌ {e}")
        state.save_log()
        return 1

    if mode == RunMode.INTERACTIVE:
        state.log(f"\n✅ Selected: {selected[0].relative_path}\n")
    else:
        state.log(f"\n📦 Processing {_plural(len(selected))} in batch mode\n")
    state.log("=" * 60)

    state.generator = generator if generator is not None else build_generator(config)
    summary = run_batch(state, selected)

    manifest_saved = True
    try:
        save_merged_manifest(state)
    except ManifestError as e:
        manifest_saved = False
        state.log(f"\n❌ Manifest not updated: {e}")

    display_summary(state, summary)
    state.save_log()
    return 0 if summary.failed == 0 and manifest_saved else 1
