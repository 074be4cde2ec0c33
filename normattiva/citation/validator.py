"""
Italian legal citation validator.

Checks a citation against the corpus: the cited Act must exist, and the
cited article should exist in it.
"""

import logging
from typing import Optional, Union

from normattiva.citation.parser import parse_citation
from normattiva.corpus import DocumentStore
from normattiva.models import ParsedCitation, ValidationResult
from normattiva.statute_id import resolve_existing_statute_id

logger = logging.getLogger(__name__)


class CitationValidator:
    """Validate citations against a DocumentStore."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def _resolve(self, parsed: ParsedCitation) -> Optional[str]:
        document_id = None
        if parsed.document_id:
            document_id = resolve_existing_statute_id(self.store, parsed.document_id)
        if not document_id and parsed.title:
            document_id = resolve_existing_statute_id(self.store, parsed.title)
        return document_id

    def validate(self, citation: Union[str, ParsedCitation]) -> ValidationResult:
        """
        Validate a citation string (or an already parsed citation).

        Returns:
            ValidationResult; never raises. A missing Act yields
            document_exists=False, a missing article only a warning.
        """
        parsed = citation if isinstance(citation, ParsedCitation) else parse_citation(citation)

        if not parsed.valid:
            return ValidationResult(
                citation=parsed, warnings=[parsed.error or "Invalid citation format"]
            )

        document_id = self._resolve(parsed)
        document = self.store.get_document(document_id) if document_id else None
        if document is None:
            search_term = (
                parsed.document_id
                or parsed.title
                or f"{parsed.type}-{parsed.number}-{parsed.year}"
            )
            return ValidationResult(
                citation=parsed,
                warnings=[f'Document "{search_term}" not found in database'],
            )

        warnings = []
        if document.status == "repealed":
            warnings.append("This law has been repealed")

        provision_exists = False
        if parsed.article:
            token = parsed.article_ref
            provision = self.store.find_provision(document.id, [token, f"art{token}"])
            provision_exists = provision is not None
            if not provision_exists:
                warnings.append(f"Article {token} not found in {document.title}")

        logger.debug(f"Validated {parsed.document_id or parsed.title}: {warnings or 'ok'}")
        return ValidationResult(
            citation=parsed,
            document_exists=True,
            provision_exists=provision_exists,
            document_title=document.title,
            status=document.status,
            warnings=warnings,
        )
