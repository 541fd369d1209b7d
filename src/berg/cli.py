from __future__ import annotations

import argparse
import os
import sys
from importlib import metadata
from pathlib import Path

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

import tomllib

from .epub import (
    TEXT_EXTENSIONS,
    BergError,
    RewriteSummary,
    normalize_extensions,
    rewrite_epub,
    set_debug_logging,
)
from .transformers import available_transformers, get_transformer

DEFAULT_TRANSFORM = "bionic"
_TRANSFORM_ENV = "BERG_TRANSFORM"
_WORKERS_ENV = "BERG_WORKERS"


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - installed without a source tree
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("berg")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"berg {__version__}",
    )


def _env_workers() -> int:
    raw = os.environ.get(_WORKERS_ENV, "").strip()
    if not raw:
        return 1
    try:
        value = int(raw)
    except ValueError:
        return 1
    return max(1, value)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="berg",
        description=(
            "Rewrite the prose of an EPUB with a text transform (bionic reading by default), "
            "leaving markup, styles and code blocks untouched."
        ),
    )
    _add_version_flag(ap)
    ap.add_argument(
        "input_path",
        nargs="?",
        help="Path to an .epub file or a directory containing .epub files.",
    )
    ap.add_argument(
        "-o",
        "--output",
        help="Output .epub path (single-file input only; defaults to <name>_<transform>.epub).",
    )
    ap.add_argument(
        "-t",
        "--transform",
        default=os.environ.get(_TRANSFORM_ENV, DEFAULT_TRANSFORM),
        help=(
            f"Text transform to apply (default: {DEFAULT_TRANSFORM}, or ${_TRANSFORM_ENV}). "
            "Use --list-transforms to see the options."
        ),
    )
    ap.add_argument(
        "--ext",
        action="append",
        dest="extensions",
        metavar="EXT",
        help=(
            "Entry extension to treat as text; repeat for several "
            f"(default: {' '.join(TEXT_EXTENSIONS)})."
        ),
    )
    ap.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=_env_workers(),
        help=f"Worker threads for transforming documents (default: 1, or ${_WORKERS_ENV}).",
    )
    ap.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace the output file if it already exists.",
    )
    ap.add_argument(
        "--debug",
        action="store_true",
        help="Print a line for every archive entry as it is processed.",
    )
    ap.add_argument(
        "--list-transforms",
        action="store_true",
        help="List the available transforms and exit.",
    )
    return ap


class _RichProgress:
    def __init__(self, enabled: bool) -> None:
        self.console = Console(stderr=True)
        self.enabled = enabled and self.console.is_terminal
        self.progress: Progress | None = None
        self.task_id = None

    def handle(self, event: dict[str, object]) -> None:
        if not self.enabled:
            return
        event_type = event.get("event")
        if event_type == "rewrite_start":
            source = event.get("source")
            label = source.name if isinstance(source, Path) else str(source or "epub")
            total = event.get("total")
            self.progress = Progress(
                TextColumn("{task.description}", justify="left"),
                BarColumn(bar_width=None),
                TaskProgressColumn(),
                TimeElapsedColumn(),
                TextColumn("{task.fields[detail]}", justify="left"),
                console=self.console,
                transient=True,
            )
            self.progress.start()
            self.task_id = self.progress.add_task(
                label,
                total=total if isinstance(total, int) else None,
                detail="",
            )
        elif event_type == "entry_done" and self.progress is not None:
            name = str(event.get("name") or "")
            self.progress.update(self.task_id, advance=1, detail=Path(name).name)

    def close(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
            self.task_id = None


def _default_output_path(input_path: Path, transform_name: str) -> Path:
    return input_path.with_name(f"{input_path.stem}_{transform_name}.epub")


def _looks_like_output(path: Path) -> bool:
    return any(path.stem.endswith(f"_{name}") for name in available_transformers())


def _format_summary(output_path: Path, summary: RewriteSummary) -> str:
    return (
        f"Wrote {output_path} ({summary.transformed} documents transformed, "
        f"{summary.copied} entries copied) in {summary.elapsed:.2f}s"
    )


def _rewrite_one(
    input_path: Path,
    output_path: Path,
    args: argparse.Namespace,
    extensions: tuple[str, ...],
) -> None:
    if output_path.resolve() == input_path.resolve():
        raise BergError(f"Output would overwrite the input EPUB: {input_path}")
    if output_path.exists() and not args.overwrite:
        raise BergError(
            f"Refusing to overwrite existing file: {output_path} (use --overwrite)"
        )
    progress = _RichProgress(enabled=not args.debug)
    try:
        summary = rewrite_epub(
            input_path,
            output_path,
            args.transform,
            extensions=extensions,
            workers=args.jobs,
            progress=progress.handle,
        )
    finally:
        progress.close()
    print(_format_summary(output_path, summary))


def _run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    try:
        get_transformer(args.transform)
    except ValueError as exc:
        parser.error(str(exc))
    extensions = normalize_extensions(args.extensions or TEXT_EXTENSIONS)
    if not extensions:
        parser.error("--ext needs at least one non-empty extension.")

    inp_path = Path(args.input_path).expanduser()
    if inp_path.is_dir():
        if args.output:
            parser.error("--output cannot be used when processing a directory.")
        epubs: list[Path] = []
        for candidate in sorted(inp_path.iterdir()):
            if not candidate.is_file() or candidate.suffix.lower() != ".epub":
                continue
            if _looks_like_output(candidate):
                print(f"Skipping {candidate.name} (name matches berg output; pass it directly to convert it)")
                continue
            epubs.append(candidate)
        if not epubs:
            raise BergError(f"No .epub files found in directory: {inp_path}")
        for epub_path in epubs:
            _rewrite_one(
                epub_path,
                _default_output_path(epub_path, args.transform),
                args,
                extensions,
            )
        return 0

    if inp_path.exists() and inp_path.suffix.lower() != ".epub":
        parser.error(f"Input must be an .epub file or directory: {inp_path}")
    output_path = (
        Path(args.output).expanduser()
        if args.output
        else _default_output_path(inp_path, args.transform)
    )
    _rewrite_one(inp_path, output_path, args, extensions)
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    if args.list_transforms:
        for name in available_transformers():
            print(f"{name}\t{get_transformer(name).description}")
        return 0
    if args.input_path is None:
        parser.error("the following arguments are required: input_path")

    set_debug_logging(bool(args.debug))
    try:
        return _run(args, parser)
    except BergError as exc:
        print(f"berg: error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
