"""Well-formedness check for XMP packets."""

from dataclasses import dataclass
from typing import Optional
import logging
from xml.parsers import expat

logger = logging.getLogger(__name__)

JUNK_AFTER_DOCUMENT = expat.errors.codes[expat.errors.XML_ERROR_JUNK_AFTER_DOC_ELEMENT]


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of parsing an XML payload.

    A valid outcome has no reason. A malformed one carries the parser's
    message and, when known, the byte offset of the first error.
    """

    valid: bool
    reason: Optional[str] = None
    offset: Optional[int] = None
    line: Optional[int] = None
    column: Optional[int] = None
    code: Optional[int] = None

    @classmethod
    def ok(cls) -> 'ValidationOutcome':
        return cls(valid=True)

    @classmethod
    def malformed(
        cls,
        reason: str,
        offset: Optional[int] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[int] = None
    ) -> 'ValidationOutcome':
        return cls(
            valid=False,
            reason=reason,
            offset=offset,
            line=line,
            column=column,
            code=code
        )

    @property
    def is_trailing_content(self) -> bool:
        """True if content was found after the root element closed."""
        return self.code == JUNK_AFTER_DOCUMENT

    def describe(self) -> str:
        if self.valid:
            return "valid"
        kind = "trailing content" if self.is_trailing_content else "malformed"
        where = f" at byte {self.offset}" if self.offset is not None else ""
        return f"{kind}{where}: {self.reason}"


class XmlValidator:
    """Structural XML parser used to decide whether an XMP packet is readable."""

    @staticmethod
    def validate(data: bytes) -> ValidationOutcome:
        """Parse ``data`` as a complete XML document.

        Only well-formedness is checked; no schema or RDF validation.

        Args:
            data: XML bytes (the XMP packet without its APP1 identifier)

        Returns:
            ValidationOutcome
        """
        parser = expat.ParserCreate()
        try:
            parser.Parse(bytes(data), True)
        except expat.ExpatError as e:
            offset = parser.ErrorByteIndex
            outcome = ValidationOutcome.malformed(
                reason=str(e),
                offset=offset if offset >= 0 else None,
                line=e.lineno,
                column=e.offset,
                code=e.code
            )
            logger.debug(f"XML parse failed: {outcome.describe()}")
            return outcome

        return ValidationOutcome.ok()
