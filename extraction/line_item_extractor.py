"""
Line-item extraction for voice transcripts and invoice text.

This module turns normalized text into candidate items and resolves each one
against the product catalog.

Classes:
    LineItemExtractor: Segments text into candidates and resolves them

Voice transcripts:
    Fragments start at action keywords ("add", "ajouter", "retirer", ...) and
    at quantity tokens once the current fragment already holds a quantity.
    Each fragment yields an action, a quantity/unit span, optional location
    and price phrases, and the remaining words as the product name.

Invoice text:
    One fragment per line after the items header, header and summary lines
    skipped. Labelled fields ("Quantité: 20") are read first, then the row
    layouts below, in order:
        Beer (2 boxes) - 5000 JPY
        Whisky x 3 bottles - 15000 JPY
        Wine - 5 bottles - 10000 JPY
        5 bottles of Wine - 10000 JPY
        ワイン 5本 - 10000円
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from core.error_handler import log_execution_time
from core.exceptions import ParsingError
from .config import ConfigManager
from .models import (
    Action,
    CandidateItem,
    ExtractionResult,
    ProductCatalogEntry,
    RawTextBlock,
    ResolvedItem,
    SkippedFragment,
    SourceType,
)
from .product_matcher import ProductMatcher
from .quantity_normalizer import QuantityNormalizer
from .text_normalizer import TextNormalizer
from .text_utils import strip_accents

INEXACT_QUANTITY_CAP = 0.5

_QTY = r"(?P<qty>\d+(?:[.,]\d+)*)"
_PRICE_TAIL = "(?:\\s*[-|:]?\\s*(?P<price>[\\d¥€$£].*?))?\\s*$"

# Invoice row layouts, tried in order
ROW_LAYOUTS: List[Tuple[str, re.Pattern]] = [
    ("paren", re.compile(
        r"^(?P<name>[^()\d]+?)\s*\(\s*" + _QTY + r"\s*(?P<unit>[^()\d]*?)\s*\)" + _PRICE_TAIL,
        re.IGNORECASE)),
    ("times", re.compile(
        "^(?P<name>(?:(?!\\s[-|]\\s)[^|])+?)\\s+[x×]\\s*" + _QTY + r"\s*(?P<unit>[^\d\-|]*?)" + _PRICE_TAIL,
        re.IGNORECASE)),
    ("name_dash_qty", re.compile(
        r"^(?P<name>[^\d]+?)\s*[-:|]\s*" + _QTY + r"\s*(?P<unit>[^\d\-|]*?)" + _PRICE_TAIL,
        re.IGNORECASE)),
    ("qty_first", re.compile(
        "^" + _QTY + r"\s*(?P<unit>[^\d\s\-|]+)?\s+(?:(?:of|de|du|des)\s+|d')?"
        r"(?P<name>[^\d\-|]+?)" + _PRICE_TAIL,
        re.IGNORECASE)),
    ("name_qty_unit", re.compile(
        r"^(?P<name>[^\d]+?)\s*" + _QTY + r"\s*(?P<unit>[^\d\s\-|]+)?" + _PRICE_TAIL,
        re.IGNORECASE)),
]

FIELD_LABELS: Dict[str, str] = {
    "prix unitaire": "price",
    "unit price": "price",
    "prix": "price",
    "price": "price",
    "単価": "price",
    "価格": "price",
    "quantite": "quantity",
    "quantity": "quantity",
    "qte": "quantity",
    "qty": "quantity",
    "数量": "quantity",
    "unite": "unit",
    "unit": "unit",
    "単位": "unit",
    "produit": "name",
    "product": "name",
    "designation": "name",
    "description": "name",
    "品名": "name",
}

_FIELD_LABEL = re.compile(
    "(?P<label>prix\\s+unitaire|unit\\s+price|quantit[eé]|quantity|qt[eé]|qty|prix|price"
    "|unit[eé]|unit|produit|product|d[eé]signation|description"
    "|数量|単価|価格|品名|単位)\\s*[:：]",
    re.IGNORECASE,
)
_ITEMS_HEADER = re.compile(
    "^(?:items?|articles?|produits?|products?|商品|品目)(?:\\s+(?:list|liste))?\\s*[:：]?$",
    re.IGNORECASE,
)
_SUMMARY_LINE = re.compile(
    r"\b(?:invoice|facture|date|total|sous-total|subtotal|tax|tva|vat|montant|amount|"
    r"supplier|fournisseur|customer|client)\b"
    "|請求書|日付|合計|小計|税",
    re.IGNORECASE,
)
_EDGE_PUNCTUATION = " \t.-|,;:"
_DIGITS = re.compile(r"^\d+(?:[.,]\d+)*$")
_GLUED_SUFFIX = re.compile(r"^(\d+(?:[.,]\d+)*)(\D+)$")
_LEADING_CURRENCY = re.compile("^([$€£¥])(\\d+(?:[.,]\\d+)*)$")
_ELISION = re.compile(r"^([a-z]')(.+)$", re.IGNORECASE)
_QUANTITY_VALUE = re.compile(r"^(\d+(?:[.,]\d+)*)\s*(.*)$")
_COLUMN_SEPARATOR = re.compile("\\s+[-–|]\\s+|\\s*\\|\\s*")
_QUANTITY_CELL = re.compile("^(?:[x×]\\s*)?(?P<qty>\\d+(?:[.,]\\d+)*)\\s*(?P<unit>\\D*?)$", re.IGNORECASE)


class LineItemExtractor:
    """
    Extracts ordered line items from a transcript or invoice text block.

    The extractor holds only configuration; the catalog is passed to every
    call, so results depend on (text, catalog, config) alone.

    Usage:
        extractor = LineItemExtractor(ConfigManager())
        result = extractor.extract(block, catalog)
        for item in result.items:
            print(item.product_name, item.quantity, item.unit)
    """

    def __init__(self, config: Optional[ConfigManager] = None) -> None:
        self.config = config or ConfigManager()
        self.text_normalizer = TextNormalizer(self.config)
        self.quantity_normalizer = QuantityNormalizer(self.config)
        self.matcher = ProductMatcher(self.config)

    @log_execution_time()
    def extract(
        self, block: RawTextBlock, catalog: Sequence[ProductCatalogEntry]
    ) -> ExtractionResult:
        """
        Extract and resolve line items from a text block.

        Fragments without a usable quantity are reported in ``skipped``
        instead of failing the whole block.
        """
        candidates, skipped = self._segment(block)
        result = ExtractionResult(skipped=skipped)

        for candidate in candidates:
            try:
                item = self.resolve(candidate, catalog)
            except ParsingError as e:
                logger.warning(f"Dropping fragment '{candidate.raw_fragment}': {e}")
                result.skipped.append(SkippedFragment(candidate.raw_fragment, str(e)))
                continue
            result.candidates.append(candidate)
            result.items.append(item)

        logger.info(
            f"Extracted {len(result.items)} items from {block.source_type.value} text "
            f"({result.review_count} need review, {len(result.skipped)} skipped)"
        )
        return result

    def segment(self, block: RawTextBlock) -> List[CandidateItem]:
        """Split a block into candidate items without resolving them."""
        candidates, _ = self._segment(block)
        return candidates

    def resolve(
        self, candidate: CandidateItem, catalog: Sequence[ProductCatalogEntry]
    ) -> ResolvedItem:
        """
        Normalize and match one candidate.

        Raises:
            ParsingError: If the candidate's quantity holds no number
        """
        normalized = self.quantity_normalizer.normalize(
            candidate.quantity_raw, candidate.unit_raw, candidate.product_raw
        )
        match = self.matcher.match(candidate.product_raw, catalog)
        confidence = min(match.confidence, 1.0 if normalized.exact else INEXACT_QUANTITY_CAP)

        item = ResolvedItem.resolve(
            review_threshold=self.config.review_threshold,
            product_id=match.entry.id if match.entry else None,
            product_name=match.entry.name if match.entry else candidate.product_raw,
            quantity=normalized.quantity,
            unit=normalized.unit,
            confidence=confidence,
            original_text=candidate.raw_fragment,
            price=self._parse_price(candidate.price_raw),
            location=candidate.location_raw,
            action=candidate.action,
        )
        logger.debug(f"Resolved '{candidate.raw_fragment}' -> {item}")
        return item

    def _parse_price(self, price_raw: Optional[str]) -> Optional[float]:
        if not price_raw:
            return None
        try:
            return self.quantity_normalizer.parse_number(price_raw).value
        except ParsingError:
            logger.debug(f"Ignoring unreadable price '{price_raw}'")
            return None

    def _segment(self, block: RawTextBlock) -> Tuple[List[CandidateItem], List[SkippedFragment]]:
        text = self.text_normalizer.normalize(block)
        if not text:
            logger.debug("Empty text block")
            return [], []

        if block.source_type is SourceType.INVOICE:
            candidates, skipped = self._segment_invoice(text)
        else:
            candidates, skipped = self._segment_voice(text)

        for fragment in skipped:
            logger.warning(f"Skipped fragment '{fragment.fragment}': {fragment.reason}")
        return candidates, skipped

    # ----- voice -----

    def _segment_voice(self, text: str) -> Tuple[List[CandidateItem], List[SkippedFragment]]:
        candidates: List[CandidateItem] = []
        skipped: List[SkippedFragment] = []

        for tokens in self._merge_trailing_numbers(self._split_voice_fragments(self._tokenize_voice(text))):
            candidate = self._parse_voice_fragment(tokens)
            if candidate is None:
                skipped.append(SkippedFragment(" ".join(tokens), "no quantity"))
            else:
                logger.debug(f"Voice candidate: {candidate}")
                candidates.append(candidate)
        return candidates, skipped

    def _tokenize_voice(self, text: str) -> List[str]:
        """Whitespace tokens with edge punctuation removed and glued forms split ("5kg", "l'emplacement")."""
        tokens: List[str] = []
        for raw in text.replace("’", "'").split():
            token = raw.strip(",;:!?\"()").rstrip(".")
            if not token:
                continue

            elision = _ELISION.match(token)
            if elision and elision.group(1).lower() in self.config.filler_words:
                tokens.extend(elision.groups())
                continue

            glued = _GLUED_SUFFIX.match(token)
            if glued and (
                glued.group(2).lower() in self.config.currency_words
                or self.quantity_normalizer.lookup_unit(glued.group(2))
            ):
                tokens.extend(glued.groups())
                continue

            leading_currency = _LEADING_CURRENCY.match(token)
            if leading_currency:
                tokens.extend(leading_currency.groups())
                continue

            tokens.append(token)
        return tokens

    def _split_voice_fragments(self, tokens: List[str]) -> List[List[str]]:
        fragments: List[List[str]] = []
        current: List[str] = []
        has_quantity = False

        for i, token in enumerate(tokens):
            if token.lower() in self.config.action_keywords:
                if current:
                    fragments.append(current)
                current, has_quantity = [token], False
                continue

            if self._starts_quantity(tokens, i) and not self._continues_number(tokens, i):
                if has_quantity:
                    fragments.append(current)
                    current = []
                has_quantity = True
            current.append(token)

        if current:
            fragments.append(current)

        trimmed = (self._trim_connectors(fragment) for fragment in fragments)
        return [fragment for fragment in trimmed if fragment]

    def _merge_trailing_numbers(self, fragments: List[List[str]]) -> List[List[str]]:
        """Fold a bare number fragment back into the previous product name ("Chanel 5")."""
        merged: List[List[str]] = []
        for tokens in fragments:
            bare_number = (
                self._is_number_token(tokens[0])
                and self._number_run_end(tokens, 0) == len(tokens)
            )
            if merged and bare_number:
                merged[-1] = merged[-1] + tokens
            else:
                merged.append(tokens)
        return merged

    def _trim_connectors(self, tokens: List[str]) -> List[str]:
        connectors = self.config.connectors
        start, end = 0, len(tokens)
        while start < end and tokens[start].lower() in connectors:
            start += 1
        while end > start and tokens[end - 1].lower() in connectors:
            end -= 1
        return tokens[start:end]

    def _is_number_token(self, token: str) -> bool:
        return bool(_DIGITS.match(token)) or self.quantity_normalizer.is_number_word(token)

    def _is_currency(self, token: str) -> bool:
        return token.lower() in self.config.currency_words

    def _continues_number(self, tokens: List[str], i: int) -> bool:
        """True when tokens[i] extends a spoken number ("vingt quatre", "deux virgule cinq")."""
        if i == 0 or _DIGITS.match(tokens[i]):
            return False
        previous = tokens[i - 1].lower()
        if self.quantity_normalizer.is_number_word(previous):
            return True
        joiners = self.config.decimal_tokens + self.config.conjunction_tokens
        return previous in joiners and i >= 2 and self._is_number_token(tokens[i - 2])

    def _number_run_end(self, tokens: List[str], start: int) -> int:
        """Index just past the number starting at tokens[start]."""
        if _DIGITS.match(tokens[start]):
            return start + 1
        joiners = self.config.decimal_tokens + self.config.conjunction_tokens
        end = start + 1
        while end < len(tokens):
            if self.quantity_normalizer.is_number_word(tokens[end]):
                end += 1
            elif (
                tokens[end].lower() in joiners
                and end + 1 < len(tokens)
                and self._is_number_token(tokens[end + 1])
            ):
                end += 2
            else:
                break
        return end

    def _starts_quantity(self, tokens: List[str], i: int) -> bool:
        """A number token that is not a location code or a price."""
        if not self._is_number_token(tokens[i]):
            return False
        if i > 0:
            previous = tokens[i - 1].lower()
            if previous in self.config.location_keywords or self._is_currency(previous):
                return False
        end = self._number_run_end(tokens, i)
        return not (end < len(tokens) and self._is_currency(tokens[end]))

    def _parse_voice_fragment(self, tokens: List[str]) -> Optional[CandidateItem]:
        action = Action.ADD
        body = list(tokens)
        if body and body[0].lower() in self.config.action_keywords:
            action = self.config.action_keywords[body[0].lower()]
            body = body[1:]

        body, location_raw = self._take_location(body)
        body, price_raw = self._take_price(body)

        start = next((i for i, token in enumerate(body) if self._is_number_token(token)), None)
        if start is None:
            return None

        end = self._number_run_end(body, start)
        quantity_raw = " ".join(body[start:end])
        unit_raw = None
        if end < len(body) and self.quantity_normalizer.lookup_unit(body[end]):
            unit_raw = body[end]
            end += 1

        return CandidateItem(
            raw_fragment=" ".join(tokens),
            action=action,
            quantity_raw=quantity_raw,
            product_raw=self._clean_product(body[:start] + body[end:]),
            unit_raw=unit_raw,
            location_raw=location_raw,
            price_raw=price_raw,
        )

    def _take_location(self, body: List[str]) -> Tuple[List[str], Optional[str]]:
        """Remove the last location phrase ("to inventory location A3") and return its value."""
        keyword_index = None
        for i, token in enumerate(body):
            if token.lower() in self.config.location_keywords and i + 1 < len(body):
                keyword_index = i
        if keyword_index is None:
            return body, None

        stop_words = set(
            self.config.location_prepositions
            + self.config.price_markers
            + self.config.connectors
        )
        end = keyword_index + 2
        while end < len(body):
            token = body[end]
            if token.lower() in stop_words or self._is_number_token(token) or self._is_currency(token):
                break
            end += 1

        start = keyword_index
        while start > 0 and body[start - 1].lower() in self.config.filler_words:
            start -= 1
        if start > 0 and body[start - 1].lower() in self.config.location_prepositions:
            start -= 1

        location = " ".join(body[keyword_index + 1:end])
        return body[:start] + body[end:], location

    def _take_price(self, body: List[str]) -> Tuple[List[str], Optional[str]]:
        """Remove the price phrase ("à 12 euros", "for $15") and return its raw text."""
        currency_index = next((i for i, token in enumerate(body) if self._is_currency(token)), None)
        if currency_index is None:
            return body, None

        start = currency_index
        while start > 0 and self.quantity_normalizer.is_number_word(body[start - 1]):
            start -= 1
        if start > 0 and _DIGITS.match(body[start - 1]) and start == currency_index:
            start -= 1

        end = currency_index + 1
        if start == currency_index and end < len(body) and self._is_number_token(body[end]):
            end = self._number_run_end(body, end)

        price_raw = " ".join(body[start:end]) if end - start > 1 else None
        if start > 0 and body[start - 1].lower() in self.config.price_markers:
            start -= 1
        return body[:start] + body[end:], price_raw

    def _clean_product(self, tokens: List[str]) -> str:
        """Join product words, dropping filler words and connectors at both ends."""
        noise = set(self.config.filler_words + self.config.connectors)
        words = [token.strip(_EDGE_PUNCTUATION) for token in tokens]
        words = [word for word in words if word]
        while words and words[0].lower() in noise:
            words.pop(0)
        while words and words[-1].lower() in noise:
            words.pop()
        return " ".join(words)

    # ----- invoices -----

    def _item_lines(self, text: str) -> List[str]:
        lines = [line.strip() for line in text.split("\n")]
        for index, line in enumerate(lines):
            if _ITEMS_HEADER.match(line):
                return lines[index + 1:]
        return lines

    def _segment_invoice(self, text: str) -> Tuple[List[CandidateItem], List[SkippedFragment]]:
        candidates: List[CandidateItem] = []
        skipped: List[SkippedFragment] = []
        record: Optional[Dict[str, object]] = None

        def flush() -> None:
            if record is None:
                return
            raw_fragment = " | ".join(record["lines"])
            if "quantity" not in record:
                skipped.append(SkippedFragment(raw_fragment, "no quantity"))
                return
            candidates.append(self._candidate_from_fields(raw_fragment, record))

        for line in self._item_lines(text):
            if not re.search(r"\w", line) or _SUMMARY_LINE.search(line):
                continue

            labels = list(_FIELD_LABEL.finditer(line))
            if labels:
                fields = self._labelled_fields(line, labels)
                if record is None or any(key in record for key in fields):
                    flush()
                    record = {"lines": []}
                record.update(fields)
                record["lines"].append(line)
                continue

            flush()
            record = None
            candidate = self._parse_invoice_row(line)
            if candidate is not None:
                candidates.append(candidate)
            elif re.search(r"\d", line):
                skipped.append(SkippedFragment(line, "unrecognized invoice line"))
            else:
                record = {"name": line.strip(_EDGE_PUNCTUATION), "lines": [line]}

        flush()
        for candidate in candidates:
            logger.debug(f"Invoice candidate: {candidate}")
        return candidates, skipped

    def _labelled_fields(self, line: str, labels: List[re.Match]) -> Dict[str, str]:
        """Read "Label: value" pairs; text before the first label is the product name."""
        fields: Dict[str, str] = {}
        lead = line[:labels[0].start()].strip(_EDGE_PUNCTUATION)
        if lead:
            fields["name"] = lead

        for index, label in enumerate(labels):
            value_end = labels[index + 1].start() if index + 1 < len(labels) else len(line)
            value = line[label.end():value_end].strip(_EDGE_PUNCTUATION)
            key = FIELD_LABELS[" ".join(strip_accents(label.group("label").lower()).split())]
            if not value:
                continue
            if key == "quantity":
                quantity = _QUANTITY_VALUE.match(value)
                if quantity:
                    value = quantity.group(1)
                    if quantity.group(2) and "unit" not in fields:
                        fields["unit"] = quantity.group(2).strip(_EDGE_PUNCTUATION)
            fields[key] = value
        return fields

    def _candidate_from_fields(self, raw_fragment: str, fields: Dict[str, object]) -> CandidateItem:
        return CandidateItem(
            raw_fragment=raw_fragment,
            action=Action.ADD,
            quantity_raw=str(fields["quantity"]),
            product_raw=self._clean_product(str(fields.get("name", "")).split()),
            unit_raw=fields.get("unit") or None,
            price_raw=fields.get("price") or None,
        )

    def _parse_invoice_columns(self, line: str) -> Optional[CandidateItem]:
        """
        Read a row whose columns are separated by " - " or "|".

        The quantity is the first cell after the name holding a number and a
        known unit ("3 bouteilles"). In rows of three or more columns a bare
        number right after the name also counts. Name cells may hold digits
        (vintages, volumes).
        """
        cells = [cell.strip() for cell in _COLUMN_SEPARATOR.split(line)]
        cells = [cell for cell in cells if cell]
        if len(cells) < 2:
            return None

        quantity_index, unit = None, None
        for index in range(1, len(cells)):
            quantity = _QUANTITY_CELL.match(cells[index])
            unit_raw = quantity.group("unit").strip(_EDGE_PUNCTUATION) if quantity else ""
            if (
                unit_raw
                and not self._is_currency(unit_raw)
                and self.quantity_normalizer.lookup_unit(unit_raw)
            ):
                quantity_index, unit = index, unit_raw
                break

        if quantity_index is None:
            if len(cells) < 3 or _DIGITS.match(cells[0].split()[0]):
                return None
            quantity = _QUANTITY_CELL.match(cells[1])
            if not quantity or quantity.group("unit").strip():
                return None
            quantity_index = 1

        product = self._clean_product(" ".join(cells[:quantity_index]).split())
        if not product:
            return None

        price_raw = next(
            (cell for cell in cells[quantity_index + 1:] if re.search(r"\d", cell)), None
        )
        logger.debug(f"Invoice line '{line}' matched column layout")
        return CandidateItem(
            raw_fragment=line,
            action=Action.ADD,
            quantity_raw=_QUANTITY_CELL.match(cells[quantity_index]).group("qty"),
            product_raw=product,
            unit_raw=unit,
            price_raw=price_raw,
        )

    def _parse_invoice_row(self, line: str) -> Optional[CandidateItem]:
        candidate = self._parse_invoice_columns(line)
        if candidate is not None:
            return candidate

        for layout, pattern in ROW_LAYOUTS:
            match = pattern.match(line)
            if not match:
                continue

            name = match.group("name").strip(_EDGE_PUNCTUATION)
            unit = (match.group("unit") or "").strip(_EDGE_PUNCTUATION) or None
            if layout == "qty_first" and unit and not self.quantity_normalizer.lookup_unit(unit):
                name = f"{unit} {name}"
                unit = None

            product = self._clean_product(name.split())
            if not product:
                continue

            logger.debug(f"Invoice line '{line}' matched layout '{layout}'")
            return CandidateItem(
                raw_fragment=line,
                action=Action.ADD,
                quantity_raw=match.group("qty"),
                product_raw=product,
                unit_raw=unit,
                price_raw=(match.group("price") or "").strip() or None,
            )
        return None
