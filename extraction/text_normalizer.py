"""Text cleanup applied before segmentation."""

import re
import unicodedata
from typing import List, Tuple

from loguru import logger

from .config import ConfigManager
from .models import RawTextBlock, SourceType


class TextNormalizer:
    """Normalizes transcripts and OCR text without changing their casing."""

    def __init__(self, config: ConfigManager) -> None:
        self.config = config
        self._compile_correction_patterns()

    def _compile_correction_patterns(self) -> None:
        """Pre-compile the configured ASR corrections."""
        self._asr_corrections: List[Tuple[re.Pattern, str]] = []
        for pattern, replacement in self.config.asr_corrections.items():
            try:
                self._asr_corrections.append((re.compile(pattern, re.IGNORECASE), replacement))
            except re.error as e:
                logger.warning(f"Ignoring invalid ASR correction '{pattern}': {e}")
        self._inline_space = re.compile("[ \t\u00a0\u3000]+")
        self._ellipsis = re.compile("\u2026")

    def apply_asr_corrections(self, text: str) -> str:
        """Fix common speech-to-text mis-hearings of product names and number words."""
        corrected_text = text
        for pattern, replacement in self._asr_corrections:
            corrected_text = pattern.sub(replacement, corrected_text)
        return corrected_text

    def normalize(self, block: RawTextBlock) -> str:
        """
        Normalize the text of a block.

        NFKC folds full-width digits and letters from Japanese OCR into ASCII,
        ellipsis characters become "...", runs of inline whitespace collapse
        while line breaks are kept for invoice row segmentation. ASR corrections
        apply to voice transcripts only.
        """
        if not block.text:
            return ""

        text = unicodedata.normalize("NFKC", block.text)
        text = self._ellipsis.sub("...", text)
        text = text.replace("\r\n", "\n").replace("\r", "\n")

        if block.source_type is SourceType.VOICE:
            text = self.apply_asr_corrections(text)

        lines = [self._inline_space.sub(" ", line).strip() for line in text.split("\n")]
        return "\n".join(lines).strip()
