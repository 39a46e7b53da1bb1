"""Batch scan and conversion of Markdown-authored Google Docs.

The batch runs strictly sequentially: each listed document is fetched,
classified, rebuilt as a formatted Google Doc, exported and added to the
archive before the next one starts. Per-document failures, remote or
not, are recorded and never stop the batch; nothing is rolled back.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from .config import Settings, settings as default_settings
from .exceptions import ConverterError
from .logger import Timer, get_logger
from .models import ConversionOutcome, DriveFile, MarkdownDocument
from .utils.archive import ArchiveBuilder
from .utils.classifier import evaluate
from .utils.markdown_renderer import render_html
from .utils.structure_transformer import html_to_operations, operations_to_requests
from .utils.text_extractor import extract_text

logger = get_logger(__name__)

SKIP_ALREADY_CONVERTED = "already converted"
SKIP_NOT_MARKDOWN = "not markdown"


class Workspace(Protocol):
    """Remote document store used by the pipeline."""

    def list_documents(self) -> list[DriveFile]: ...

    def get_document(self, document_id: str) -> dict[str, Any]: ...

    def ensure_folder(self, name: str) -> str: ...

    def create_document(self, title: str, folder_id: str | None = None) -> str: ...

    def batch_update(self, document_id: str, requests: list[dict[str, Any]]) -> None: ...

    def export(self, file_id: str, mime_type: str) -> bytes: ...


@dataclass
class BatchRun:
    """Outcomes and archive of one batch conversion."""

    outcomes: list[ConversionOutcome] = field(default_factory=list)
    archive: bytes = b""
    file_count: int = 0


def build_requests(markdown_text: str) -> list[dict[str, Any]]:
    """Render Markdown source into ordered ``batchUpdate`` requests."""
    return operations_to_requests(html_to_operations(render_html(markdown_text)))


class BatchConverter:
    """Drives the fetch → classify → transform → submit → export sequence."""

    def __init__(self, workspace: Workspace, settings: Settings | None = None):
        self.workspace = workspace
        self.settings = settings or default_settings

    def is_conversion(self, source: DriveFile) -> bool:
        """Check whether ``source`` is itself the output of an earlier run."""
        return bool(self.settings.converted_prefix) and self.settings.converted_prefix in source.name

    def scan(self) -> list[MarkdownDocument]:
        """List documents whose text looks like Markdown.

        Documents that cannot be fetched are logged and left out.
        """
        found = []
        for source in self.workspace.list_documents():
            try:
                document = self.workspace.get_document(source.id)
            except ConverterError as exc:
                logger.warning("Skipping unreadable document", extra_data={"file_id": source.id, "error": str(exc)})
                continue
            verdict = evaluate(extract_text(document))
            if verdict.is_markdown:
                found.append(MarkdownDocument(id=source.id, name=source.name, signals=verdict.signals))

        logger.info("Scanned documents", extra_data={"markdown_documents": len(found)})
        return found

    def run(self) -> BatchRun:
        """Convert every listed document.

        Raises:
            RemoteApiFailure: If the output folder or the listing cannot be obtained
        """
        folder_id = self.workspace.ensure_folder(self.settings.converted_folder_name)
        sources = self.workspace.list_documents()
        logger.info("Starting batch conversion", extra_data={"documents": len(sources), "folder_id": folder_id})

        archive = ArchiveBuilder()
        outcomes = [self.convert_file(source, folder_id, archive) for source in sources]
        batch = BatchRun(outcomes=outcomes, archive=archive.finalize(), file_count=len(archive))

        logger.info("Finished batch conversion", extra_data={"documents": len(outcomes), "archived": batch.file_count})
        return batch

    def convert_file(self, source: DriveFile, folder_id: str | None, archive: ArchiveBuilder) -> ConversionOutcome:
        """Process one document and report its outcome."""
        if self.settings.skip_converted and self.is_conversion(source):
            return ConversionOutcome.skipped(source, SKIP_ALREADY_CONVERTED)

        document_id = None
        with Timer("convert_file") as timer:
            try:
                text = extract_text(self.workspace.get_document(source.id))
                if not evaluate(text).is_markdown:
                    return ConversionOutcome.skipped(source, SKIP_NOT_MARKDOWN)

                requests = build_requests(text)
                title = f"{self.settings.converted_prefix}{source.name}"
                document_id = self.workspace.create_document(title, folder_id)
                self.workspace.batch_update(document_id, requests)
                payload = self.workspace.export(document_id, self.settings.export_mime_type)
                entry_name = archive.add(f"{source.name}{self.settings.export_extension}", payload)
            except ConverterError as exc:
                logger.error(
                    "Document conversion failed",
                    extra_data={"file_id": source.id, "error_kind": exc.error_kind, "error": str(exc)},
                )
                return ConversionOutcome.failed(source, str(exc), document_id)
            except Exception as exc:
                logger.error(
                    "Unexpected error converting document",
                    extra_data={"file_id": source.id, "error_kind": type(exc).__name__, "error": str(exc)},
                )
                return ConversionOutcome.failed(source, f"{type(exc).__name__}: {exc}", document_id)

        logger.info(
            "Converted document",
            extra_data={
                "file_id": source.id,
                "document_id": document_id,
                "requests": len(requests),
                "elapsed_ms": timer.get_elapsed_ms(),
            },
        )
        return ConversionOutcome.converted(source, entry_name, document_id)
