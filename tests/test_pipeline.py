"""
Unit tests for the extraction pipeline: flattening, strategies, extractor,
amount canonicalization, full pipeline.
"""
import pytest

from checkledger.pipeline import process_recognition
from checkledger.pipeline.amount import canonicalize_amount, format_cents
from checkledger.pipeline.extractor import extract_check_fields
from checkledger.pipeline.flatten import corpus_text, flatten_strings
from checkledger.pipeline.strategies import (
    ExtractionInput,
    currency_amount,
    digit_run_amount,
    first_of,
    plain_amount,
    text_identity,
)
from checkledger.schemas import RecognitionResult


def ocr_result(front_text: str = "", back_text: str = "") -> RecognitionResult:
    """OCR.space-shaped result for the given transcripts."""
    def side(text):
        return {"ParsedResults": [{"ParsedText": text}], "OCRExitCode": 1} if text else {}

    return RecognitionResult(provider="ocr", front=side(front_text), back=side(back_text))


def vision_result(front=None, back=None, combined=None) -> RecognitionResult:
    whole = {"front": front or {}, "back": back or {}, "combined": combined or {}}
    return RecognitionResult(
        provider="vision", front=whole["front"], back=whole["back"], combined=whole
    )


def text_input(text: str) -> ExtractionInput:
    return ExtractionInput(front={}, back={}, text=text)


# =====================================================================
# Flattening
# =====================================================================
class TestFlatten:
    def test_depth_first_key_order(self):
        value = {
            "a": "x",
            "b": [1, "y", {"c": "z", "d": ["w"]}],
            "e": None,
            "f": True,
            "g": "v",
        }
        assert flatten_strings(value) == ["x", "y", "z", "w", "v"]

    def test_scalar_and_empty(self):
        assert flatten_strings("only") == ["only"]
        assert flatten_strings(3.5) == []
        assert flatten_strings({}) == []
        assert flatten_strings(None) == []

    def test_corpus_joins_values(self):
        assert corpus_text({"a": "x"}, None, ["y", "z"]) == "x y z"


# =====================================================================
# Amount canonicalization
# =====================================================================
class TestCanonicalizeAmount:
    @pytest.mark.parametrize(
        "text, cents",
        [
            ("50.50", 5050),
            ("100.00", 10000),
            ("$1,234.56", 123456),
            ("USD 12", 1200),
            (".5", 50),
            ("-5.00", -500),
            ("12.345", 1235),
        ],
    )
    def test_examples(self, text, cents):
        assert canonicalize_amount(text) == cents

    def test_round_half_up(self):
        assert canonicalize_amount("0.005") == 1
        assert canonicalize_amount("0.004") == 0
        assert canonicalize_amount("-0.005") == -1

    @pytest.mark.parametrize("text", [None, "", "abc", "1.2.3", ".", "--"])
    def test_unparsable_is_none(self, text):
        assert canonicalize_amount(text) is None

    def test_idempotent_on_canonical_strings(self):
        for cents in (0, 1, 5, 99, 100, 5050, 10000, 123456):
            assert canonicalize_amount(format_cents(cents)) == cents

    def test_format_cents(self):
        assert format_cents(5) == "0.05"
        assert format_cents(123456) == "1234.56"
        assert format_cents(-250) == "-2.50"

    @pytest.mark.parametrize("text", ["1" * 30, "9" * 27, "9" * 40 + ".99", "-" + "5" * 50])
    def test_out_of_range_is_none(self, text):
        assert canonicalize_amount(text) is None

    def test_largest_in_range(self):
        assert canonicalize_amount("9" * 26) == int("9" * 26) * 100

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "-inf"])
    def test_non_finite_words_are_none(self, text):
        assert canonicalize_amount(text) is None


# =====================================================================
# Strategies
# =====================================================================
class TestStrategies:
    def test_first_of_skips_misses(self):
        def miss(_):
            return None

        def empty(_):
            return ""

        def hit(_):
            return "x"

        assert first_of([miss, empty, hit], None) == ("x", "hit")
        assert first_of([miss, empty], None) == (None, None)

    def test_currency_amount_with_thousands(self):
        assert currency_amount(text_input("$1,234.56 due")) == "1234.56"
        assert currency_amount(text_input("pay usd 50.50 now")) == "50.50"
        assert currency_amount(text_input("$1234.56")) == "1234.56"

    def test_plain_amount_normalizes_separators(self):
        assert plain_amount(text_input("total 75,00")) == "75.00"
        assert plain_amount(text_input("total 1.234,56")) == "1234.56"
        assert plain_amount(text_input("no money here")) is None

    def test_digit_run_prefers_longest(self):
        assert digit_run_amount(text_input("memo 5050 ref 12")) == "50.50"
        assert digit_run_amount(text_input("1234 and 1234567")) == "12345.67"
        assert digit_run_amount(text_input("0099")) == "0.99"
        assert digit_run_amount(text_input("12 345 12345678")) is None

    def test_text_identity(self):
        identity = text_identity(text_input("⑆021000021⑆ 123456789⑈ 1042"))
        assert identity.render() == "021000021_123456789_1042"

    def test_text_identity_needs_exact_nine_digits(self):
        assert text_identity(text_input("0210000211 5555 6666")) is None
        assert text_identity(text_input("no digits at all")) is None

    def test_text_identity_needs_two_more_runs(self):
        assert text_identity(text_input("021000021 1234 567")) is None


# =====================================================================
# Extraction engine
# =====================================================================
class TestCheckIdentity:
    def test_combined_check_id_used_verbatim(self):
        result = vision_result(
            front={"routing_number": "021000021", "account_number": "1", "check_number": "2"},
            combined={"check_id": "111_222_333", "amount": None},
        )
        extracted = extract_check_fields(result)
        assert extracted.check_id == "111_222_333"
        assert extracted.identity is None
        assert extracted.sources["check_id"] == "combined_check_id"

    def test_structured_fields(self):
        result = vision_result(
            front={"routing_number": "021000021", "account_number": "123456", "check_number": "789"}
        )
        extracted = extract_check_fields(result)
        assert extracted.check_id == "021000021_123456_789"
        assert extracted.sources["check_id"] == "structured_identity"

    def test_structured_aliases_across_sides(self):
        result = RecognitionResult(
            provider="ocr",
            front={"aba": "021000021", "account": 123456},
            back={"cheque_number": "0042"},
        )
        assert extract_check_fields(result).check_id == "021000021_123456_0042"

    def test_partial_structured_falls_back_to_text(self):
        result = RecognitionResult(
            provider="ocr",
            front={"routing_number": "021000021", "raw_text": "⑆021000021⑆ 55512345⑈ 1001"},
        )
        extracted = extract_check_fields(result)
        assert extracted.check_id == "021000021_55512345_1001"
        assert extracted.sources["check_id"] == "text_identity"

    def test_partial_identity_is_absent(self):
        result = RecognitionResult(
            provider="ocr", front={"routing_number": "021000021", "raw_text": "nothing useful"}
        )
        assert extract_check_fields(result).check_id is None

    def test_text_fallback_from_ocr_transcript(self):
        extracted = extract_check_fields(ocr_result("PAY TO THE ORDER OF\n⑆021000021⑆ 987654321⑈ 2001"))
        assert extracted.check_id == "021000021_987654321_2001"

    def test_boolean_is_not_an_identity_component(self):
        result = RecognitionResult(
            provider="ocr",
            front={"routing_number": "021000021", "account_number": True, "check_number": "7"},
        )
        assert extract_check_fields(result).check_id is None


class TestAmountExtraction:
    def test_structured_wins_over_text(self):
        result = vision_result(front={"amount": "12.00", "raw_text": "$99.99"})
        assert extract_check_fields(result).amount == "12.00"

    def test_back_side_structured(self):
        result = RecognitionResult(provider="ocr", front={}, back={"legal_amount": "7.25"})
        assert extract_check_fields(result).amount == "7.25"

    def test_numeric_structured(self):
        result = RecognitionResult(provider="ocr", front={"amount_numeric": 50.5})
        assert extract_check_fields(result).amount == "50.5"

    @pytest.mark.parametrize(
        "amount, text, cents",
        [
            (1e-05, "0.00001", 0),
            (1e16, "10000000000000000", 10**18),
            (0.005, "0.005", 1),
            (1234, "1234", 123400),
        ],
    )
    def test_numeric_amount_in_positional_notation(self, amount, text, cents):
        extracted, amount_cents = process_recognition(
            RecognitionResult(provider="ocr", front={"amount": amount})
        )
        assert extracted.amount == text
        assert amount_cents == cents

    def test_non_finite_numeric_amount(self):
        _, amount_cents = process_recognition(
            RecognitionResult(provider="ocr", front={"amount": float("inf")})
        )
        assert amount_cents is None

    def test_huge_amount_does_not_break_pipeline(self):
        result = RecognitionResult(
            provider="ocr",
            front={"routing_number": "021000021", "account_number": "123456",
                   "check_number": "789", "amount": "9" * 30},
        )
        extracted, amount_cents = process_recognition(result)
        assert extracted.check_id == "021000021_123456_789"
        assert amount_cents is None

    def test_combined_amount(self):
        result = vision_result(front={"amount": None}, combined={"amount": "33.10"})
        extracted = extract_check_fields(result)
        assert extracted.amount == "33.10"
        assert extracted.sources["amount"] == "combined_amount"

    def test_text_amount(self):
        extracted = extract_check_fields(ocr_result("Amount $1,234.56 due"))
        assert extracted.amount == "1234.56"
        assert extracted.sources["amount"] == "currency_amount"

    def test_no_amount_is_valid(self):
        extracted = extract_check_fields(ocr_result("PAY TO THE ORDER OF"))
        assert extracted.amount is None
        assert "amount" not in extracted.sources


class TestEndorsement:
    def test_explicit_flag(self):
        result = vision_result(back={"endorsement_present": True})
        extracted = extract_check_fields(result)
        assert extracted.endorsement_present is True
        assert extracted.sources["endorsement_present"] == "endorsement_flag"

    def test_true_string(self):
        result = RecognitionResult(provider="ocr", back={"signature_present": "TRUE"})
        assert extract_check_fields(result).endorsement_present is True

    def test_image_reference(self):
        result = RecognitionResult(provider="ocr", back={"endorsement_image": "img://back/sig"})
        extracted = extract_check_fields(result)
        assert extracted.endorsement_present is True
        assert extracted.sources["endorsement_present"] == "endorsement_image"

    def test_back_keywords(self):
        extracted = extract_check_fields(ocr_result("front", "Signed by J. Doe"))
        assert extracted.endorsement_present is True
        assert extracted.sources["endorsement_present"] == "back_keywords"

    def test_corpus_keywords(self):
        extracted = extract_check_fields(ocr_result("ENDORSE HERE", ""))
        assert extracted.endorsement_present is True
        assert extracted.sources["endorsement_present"] == "corpus_keywords"

    def test_no_cues(self):
        result = vision_result(back={"endorsement_present": False, "raw_text": "blank"})
        extracted = extract_check_fields(result)
        assert extracted.endorsement_present is False
        assert "endorsement_present" not in extracted.sources


# =====================================================================
# Full pipeline
# =====================================================================
class TestProcessRecognition:
    def test_canonicalizes_extracted_amount(self):
        result = vision_result(
            front={"routing_number": "021000021", "account_number": "123456", "check_number": "789",
                   "amount": "50.50"},
        )
        extracted, cents = process_recognition(result)
        assert extracted.check_id == "021000021_123456_789"
        assert cents == 5050

    def test_unparsable_amount_is_none(self):
        result = RecognitionResult(provider="ocr", front={"amount": "fifty"})
        extracted, cents = process_recognition(result)
        assert extracted.amount == "fifty"
        assert cents is None
