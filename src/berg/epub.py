from __future__ import annotations

import contextlib
import tempfile
import time
import zipfile
import zlib
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Iterable, Iterator, Union

from .scanner import TextTransform, transform_html
from .transformers import get_transformer

TEXT_EXTENSIONS = (".xhtml", ".html", ".htm")
_BOM = "\ufeff"
_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    OSError,
    NotImplementedError,
    RuntimeError,
)

_DEBUG_LOG = False

ProgressCallback = Callable[[dict[str, object]], None]
Destination = Union[str, Path, IO[bytes]]


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def _debug_log(message: str) -> None:
    if _DEBUG_LOG:
        print(f"[berg debug] {message}")


class BergError(RuntimeError):
    """Base class for errors raised while rewriting an EPUB."""


class ArchiveOpenError(BergError):
    """Raised when the source EPUB is missing or is not a zip archive."""


class ArchiveReadError(BergError):
    """Raised when an entry of the source archive cannot be read."""


class ArchiveWriteError(BergError):
    """Raised when the destination archive cannot be written or finalised."""


class DecodingError(BergError):
    """Raised when a text entry is not valid UTF-8."""

    def __init__(self, entry: str, message: str) -> None:
        super().__init__(f"{entry}: {message}")
        self.entry = entry


class TransformError(BergError):
    """Raised when a text transformer fails on an entry."""

    def __init__(self, entry: str, message: str) -> None:
        super().__init__(f"{entry}: {message}")
        self.entry = entry


@dataclass(slots=True)
class RewriteSummary:
    entries: int
    transformed: int
    copied: int
    elapsed: float


def normalize_extensions(extensions: Iterable[str]) -> tuple[str, ...]:
    normalized: list[str] = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        if ext not in normalized:
            normalized.append(ext)
    return tuple(normalized)


def is_text_entry(name: str, extensions: Iterable[str] = TEXT_EXTENSIONS) -> bool:
    return name.lower().endswith(normalize_extensions(extensions))


def resolve_transformer(transformer: str | TextTransform) -> TextTransform:
    if isinstance(transformer, str):
        return get_transformer(transformer)
    return transformer


def transform_document(payload: bytes, entry: str, transform: TextTransform) -> bytes:
    """
    Decode one text entry, run it through the scanner and re-encode it.

    A leading byte-order mark is kept in front of the result rather than being
    treated as prose.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodingError(entry, f"not valid UTF-8 text ({exc})") from exc
    prefix = ""
    if text.startswith(_BOM):
        prefix, text = _BOM, text[len(_BOM) :]
    try:
        styled = transform_html(text, transform)
    except Exception as exc:
        raise TransformError(entry, f"transform failed: {exc}") from exc
    return (prefix + styled).encode("utf-8")


def _clone_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    clone = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    clone.compress_type = info.compress_type
    clone.internal_attr = info.internal_attr
    clone.external_attr = info.external_attr
    clone.create_system = info.create_system
    clone.comment = info.comment
    return clone


def _discard_partial(destination: Destination) -> None:
    # Streams belong to the caller; only files we created are removed.
    if isinstance(destination, (str, Path)):
        Path(destination).unlink(missing_ok=True)


def _destination_label(destination: Destination) -> str:
    if isinstance(destination, (str, Path)):
        return str(destination)
    return getattr(destination, "name", None) or "<stream>"


class EpubDocument:
    """A read-only EPUB archive that can be rewritten into a new archive."""

    def __init__(self, path: Path, archive: zipfile.ZipFile) -> None:
        self.path = path
        self._archive = archive

    @classmethod
    def open(cls, path: str | Path) -> "EpubDocument":
        epub_path = Path(path)
        if not epub_path.exists():
            raise ArchiveOpenError(f"EPUB not found: {epub_path}")
        try:
            archive = zipfile.ZipFile(epub_path, "r")
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveOpenError(f"Not a valid EPUB archive: {epub_path} ({exc})") from exc
        _debug_log(f"opened {epub_path} ({len(archive.infolist())} entries)")
        return cls(epub_path, archive)

    def __enter__(self) -> "EpubDocument":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._archive.close()

    def entries(self) -> list[zipfile.ZipInfo]:
        return self._archive.infolist()

    def read_entry(self, info: zipfile.ZipInfo) -> bytes:
        try:
            return self._archive.read(info)
        except _READ_ERRORS as exc:
            raise ArchiveReadError(f"Failed to read {info.filename}: {exc}") from exc

    def _iter_payloads(
        self,
        infos: list[zipfile.ZipInfo],
        transform: TextTransform,
        extensions: tuple[str, ...],
        executor: ThreadPoolExecutor | None,
    ) -> Iterator[tuple[zipfile.ZipInfo, bytes, bool]]:
        if executor is None:
            for info in infos:
                payload = self.read_entry(info)
                if is_text_entry(info.filename, extensions):
                    yield info, transform_document(payload, info.filename, transform), True
                else:
                    yield info, payload, False
            return

        pending: list[tuple[zipfile.ZipInfo, bytes | Future[bytes]]] = []
        read_error: ArchiveReadError | None = None
        for info in infos:
            try:
                payload = self.read_entry(info)
            except ArchiveReadError as exc:
                # Entries before the unreadable one still report first.
                read_error = exc
                break
            if is_text_entry(info.filename, extensions):
                pending.append(
                    (info, executor.submit(transform_document, payload, info.filename, transform))
                )
            else:
                pending.append((info, payload))
        for info, item in pending:
            if isinstance(item, Future):
                yield info, item.result(), True
            else:
                yield info, item, False
        if read_error is not None:
            raise read_error

    def _write_entries(
        self,
        writer: zipfile.ZipFile,
        transform: TextTransform,
        extensions: tuple[str, ...],
        workers: int,
        progress: ProgressCallback | None,
        label: str,
    ) -> tuple[int, int, int]:
        infos = self.entries()
        total = len(infos)
        transformed = 0
        copied = 0
        if progress is not None:
            progress({"event": "rewrite_start", "source": self.path, "total": total})
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="berg") if workers > 1 else None
        try:
            payloads = self._iter_payloads(infos, transform, extensions, executor)
            for index, (info, payload, is_text) in enumerate(payloads, start=1):
                try:
                    writer.writestr(_clone_info(info), payload)
                except (OSError, ValueError, zipfile.LargeZipFile) as exc:
                    raise ArchiveWriteError(
                        f"Failed to write {info.filename} to {label}: {exc}"
                    ) from exc
                if is_text:
                    transformed += 1
                    _debug_log(f"{info.filename}: transformed ({info.file_size} -> {len(payload)} bytes)")
                else:
                    copied += 1
                    _debug_log(f"{info.filename}: copied ({len(payload)} bytes)")
                if progress is not None:
                    progress(
                        {
                            "event": "entry_done",
                            "index": index,
                            "total": total,
                            "name": info.filename,
                            "transformed": is_text,
                        }
                    )
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)
        return total, transformed, copied

    def transform(
        self,
        transformer: str | TextTransform,
        destination: Destination,
        *,
        extensions: Iterable[str] = TEXT_EXTENSIONS,
        workers: int = 1,
        progress: ProgressCallback | None = None,
    ) -> RewriteSummary:
        """
        Write a copy of this archive to ``destination`` with every text entry
        passed through ``transformer``.

        Entry names, order, timestamps and compression methods are kept. Any
        other entry is copied byte for byte. Errors abort the rewrite; a partial
        file at a path destination is deleted, a stream is left to the caller.
        """
        transform = resolve_transformer(transformer)
        exts = normalize_extensions(extensions)
        label = _destination_label(destination)
        start = time.perf_counter()
        try:
            writer = zipfile.ZipFile(destination, "w")
        except OSError as exc:
            raise ArchiveWriteError(f"Cannot create {label}: {exc}") from exc
        try:
            total, transformed, copied = self._write_entries(
                writer, transform, exts, max(1, workers), progress, label
            )
        except BaseException:
            with contextlib.suppress(Exception):
                writer.close()
            _discard_partial(destination)
            raise
        try:
            writer.close()
        except OSError as exc:
            _discard_partial(destination)
            raise ArchiveWriteError(f"Failed to finalise {label}: {exc}") from exc
        elapsed = time.perf_counter() - start
        _debug_log(f"rewrote {self.path} -> {label} in {elapsed:.3f}s")
        return RewriteSummary(
            entries=total,
            transformed=transformed,
            copied=copied,
            elapsed=elapsed,
        )


def rewrite_epub(
    source: str | Path,
    destination: str | Path,
    transformer: str | TextTransform = "bionic",
    *,
    extensions: Iterable[str] = TEXT_EXTENSIONS,
    workers: int = 1,
    progress: ProgressCallback | None = None,
) -> RewriteSummary:
    """
    Rewrite ``source`` into ``destination`` in one call.

    The archive is built in a temporary file beside ``destination`` and moved
    into place only once it has been finalised, so a failed run never leaves
    a truncated EPUB behind.
    """
    output_path = Path(destination)
    with EpubDocument.open(source) as document:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                prefix=f".{output_path.name}.",
                suffix=".tmp",
                dir=output_path.parent,
                delete=False,
            ) as tmp:
                tmp_path = Path(tmp.name)
        except OSError as exc:
            raise ArchiveWriteError(f"Cannot create {output_path}: {exc}") from exc
        try:
            summary = document.transform(
                transformer,
                tmp_path,
                extensions=extensions,
                workers=workers,
                progress=progress,
            )
            try:
                tmp_path.replace(output_path)
            except OSError as exc:
                raise ArchiveWriteError(f"Cannot move output into {output_path}: {exc}") from exc
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
    return summary


__all__ = [
    "ArchiveOpenError",
    "ArchiveReadError",
    "ArchiveWriteError",
    "BergError",
    "DecodingError",
    "EpubDocument",
    "RewriteSummary",
    "TEXT_EXTENSIONS",
    "TransformError",
    "is_text_entry",
    "normalize_extensions",
    "rewrite_epub",
    "set_debug_logging",
    "transform_document",
]
