"""Quantity, price and unit normalization."""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from rapidfuzz import process, fuzz

from core.exceptions import ParsingError
from .config import ConfigManager
from .models import Unit
from .text_utils import contains_keyword, normalize_name, strip_accents


@dataclass(frozen=True)
class ParsedNumber:
    """A number read from text.

    ``exact`` is False when a trailing ",N"/",NN" had to be read through the
    price-ceiling heuristic.
    """
    value: float
    exact: bool = True


@dataclass(frozen=True)
class NormalizedQuantity:
    quantity: float
    unit: Unit
    exact: bool = True


class QuantityNormalizer:
    """Maps quantity/price strings and unit words to canonical values."""

    def __init__(self, config: ConfigManager):
        self.config = config
        self._compile_patterns()
        self._plain_unit_synonyms: Dict[str, Unit] = {
            strip_accents(word): unit for word, unit in config.unit_synonyms.items()
        }
        self._category_keywords = [
            (unit, [normalize_name(keyword) for keyword in keywords])
            for unit, keywords in config.category_units
        ]

    def _compile_patterns(self) -> None:
        self._currency_pattern = re.compile(
            "[\u00a5\u20ac$\u00a3\u5186]|\\b(?:jpy|eur|usd|gbp|yens?|euros?|dollars?)\\b",
            re.IGNORECASE,
        )
        self._digit_group_space = re.compile("(?<=\\d)[\\s\u00a0\u202f]+(?=\\d{3}\\b)")
        self._numeric_token = re.compile(r"\d+(?:[.,]\d+)*")

    # ----- numbers -----

    def parse_number(self, raw: Optional[str]) -> ParsedNumber:
        """
        Parse the first number in a quantity or price string.

        Currency symbols/codes and digit-group spaces are removed first; when
        no digits are present, spoken number words are tried.

        Raises:
            ParsingError: If the string holds no numeric token
        """
        if raw is None or not str(raw).strip():
            raise ParsingError("Empty quantity")

        text = self._currency_pattern.sub(" ", str(raw))
        text = self._digit_group_space.sub("", text)

        match = self._numeric_token.search(text)
        if match:
            return self._parse_numeric_literal(match.group())

        spoken = self.parse_spoken_number(text)
        if spoken is not None:
            return ParsedNumber(spoken)

        raise ParsingError(f"No numeric token in '{raw}'")

    def _parse_numeric_literal(self, token: str) -> ParsedNumber:
        """
        Interpret separators in a digit token.

        - "," and "." both present: the rightmost is the decimal separator
        - several commas or several dots: grouping ("1,234,567", "1.234.567")
        - one comma + exactly 3 digits: grouping ("14,995" -> 14995)
        - one comma + 1-2 digits: decimal when the integer part is below
          ``price_decimal_ceiling``, otherwise grouping; either way inexact
        - one dot: decimal
        """
        exact = True
        commas, dots = token.count(","), token.count(".")

        if commas and dots:
            if token.rfind(",") > token.rfind("."):
                cleaned = token.replace(".", "").replace(",", ".")
            else:
                cleaned = token.replace(",", "")
        elif commas > 1 or dots > 1:
            cleaned = token.replace(",", "").replace(".", "")
        elif commas == 1:
            integer_part, fraction = token.split(",")
            if len(fraction) == 3:
                cleaned = integer_part + fraction
            elif len(fraction) <= 2:
                exact = False
                if int(integer_part) < self.config.price_decimal_ceiling:
                    cleaned = f"{integer_part}.{fraction}"
                else:
                    cleaned = integer_part + fraction
            else:
                cleaned = f"{integer_part}.{fraction}"
        else:
            cleaned = token

        try:
            return ParsedNumber(float(cleaned), exact)
        except ValueError as e:
            raise ParsingError(f"Malformed number '{token}'") from e

    def is_number_word(self, token: str) -> bool:
        """True for a spoken number token, including hyphenated French compounds."""
        return self._number_word_values(token.lower()) is not None

    def _number_word_values(self, token: str) -> Optional[List[int]]:
        """Values of a number-word token; compounds are split greedily on hyphens."""
        words = self.config.number_words
        if token in words:
            return [words[token]]
        if "-" not in token:
            return None

        parts = [part for part in token.split("-") if part]
        values: List[int] = []
        i = 0
        while i < len(parts):
            if parts[i] in self.config.conjunction_tokens:
                i += 1
                continue
            for j in range(len(parts), i, -1):
                joined = "-".join(parts[i:j])
                if joined in words:
                    values.append(words[joined])
                    i = j
                    break
            else:
                return None
        return values or None

    def word2num(self, tokens: Sequence[str]) -> Optional[float]:
        """
        Convert a run of number words to a value.

        Units, tens and compounds add up ("vingt-quatre", "twenty five"),
        "cent"/"hundred" multiplies the pending chunk, "mille"/"thousand"
        closes it. A decimal word ("virgule", "point") switches to digit-by-digit
        decimals.
        """
        if not tokens:
            return None

        total = 0
        current_chunk = 0
        decimal_str = ""
        in_decimal_part = False
        seen_number = False

        for token in (t.lower().strip() for t in tokens):
            if token in self.config.decimal_tokens:
                if in_decimal_part or not seen_number:
                    return None
                in_decimal_part = True
                continue

            if token in self.config.conjunction_tokens:
                continue

            values = self._number_word_values(token)
            if values is None:
                return None

            for value in values:
                seen_number = True
                if in_decimal_part:
                    decimal_str += str(value)
                elif value == 100:
                    current_chunk = (current_chunk or 1) * 100
                elif value == 1000:
                    total += (current_chunk or 1) * 1000
                    current_chunk = 0
                else:
                    current_chunk += value

        if not seen_number:
            return None

        total += current_chunk
        if decimal_str:
            return float(f"{total}.{decimal_str}")
        return float(total)

    def parse_spoken_number(self, text: str) -> Optional[float]:
        """Parse the first contiguous run of number words in text."""
        tokens = text.lower().split()
        run: List[str] = []
        for token in tokens:
            if self.is_number_word(token) or (
                run and token in self.config.decimal_tokens + self.config.conjunction_tokens
            ):
                run.append(token)
            elif run:
                break
        while run and not self.is_number_word(run[-1]):
            run.pop()
        return self.word2num(run)

    # ----- units -----

    def lookup_unit(self, unit_raw: Optional[str]) -> Optional[Unit]:
        """Resolve a unit word in any configured language; misspellings use fuzzy matching."""
        if not unit_raw:
            return None

        key = unit_raw.lower().strip(" .")
        if key in self.config.unit_synonyms:
            return self.config.unit_synonyms[key]

        plain = strip_accents(key)
        if plain in self._plain_unit_synonyms:
            return self._plain_unit_synonyms[plain]

        if len(plain) < 4:
            return None
        best_match = process.extractOne(plain, list(self._plain_unit_synonyms), scorer=fuzz.ratio)
        if best_match and best_match[1] >= 80:
            return self._plain_unit_synonyms[best_match[0]]
        return None

    def infer_unit(self, product_name_hint: Optional[str]) -> Unit:
        """Infer a unit from product keywords (spirits → bottle, beer → can, dry goods → kg)."""
        hint = normalize_name(product_name_hint or "")
        for unit, keywords in self._category_keywords:
            if any(contains_keyword(hint, keyword) for keyword in keywords):
                return unit
        return self.config.default_unit

    def normalize(
        self,
        quantity_raw: str,
        unit_raw: Optional[str],
        product_name_hint: str,
    ) -> NormalizedQuantity:
        """
        Normalize a quantity and its unit.

        Raises:
            ParsingError: If quantity_raw holds no numeric token
        """
        number = self.parse_number(quantity_raw)
        unit = self.lookup_unit(unit_raw) or self.infer_unit(product_name_hint)
        return NormalizedQuantity(quantity=number.value, unit=unit, exact=number.exact)
