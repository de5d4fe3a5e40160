import pytest

from cme_codec import PREFIX, SEP, decode_text, encode_text, fnv1a32
from cme_demo import DEFAULT_LAYERS
from cme_errors import InvalidLayer, PayloadFormatError, ReconstructionMismatch
from cme_layers import Layer

OTHER = [Layer(0x2545F4914F6CDD1D, 0x1111111111111111)]


class TestChecksum:

    def test_known_values(self):
        assert fnv1a32(b"") == 0x811C9DC5
        assert fnv1a32(b"a") == 0xE40C292C


class TestTextCodec:

    @pytest.mark.parametrize("text", [
        "",
        "hi",
        "Good day",
        "Good day, how are you?",
        "café ☕ \U0001F600",
        "x" * 100,
    ])
    def test_round_trip(self, text):
        payload = encode_text(text, DEFAULT_LAYERS)
        assert payload.startswith(PREFIX)
        assert decode_text(payload, DEFAULT_LAYERS) == text

    def test_layout(self):
        payload = encode_text("Good day", DEFAULT_LAYERS)
        parts = payload[len(PREFIX):].split(SEP)
        # length, root, rem, checksum
        assert len(parts) == 4
        assert parts[0] == "0000000000000008"
        assert parts[-1] == f"{fnv1a32(b'Good day'):08x}"

    def test_hides_plain_value(self):
        payload = encode_text("Good day", DEFAULT_LAYERS)
        assert "476f6f6420646179" not in payload

    def test_separate_remainder_chain(self):
        payload = encode_text("Good day", DEFAULT_LAYERS, OTHER)
        assert decode_text(payload, DEFAULT_LAYERS, OTHER) == "Good day"
        assert payload != encode_text("Good day", DEFAULT_LAYERS)

    def test_wrong_chain_is_mismatch(self):
        payload = encode_text("Good day", DEFAULT_LAYERS)
        with pytest.raises(ReconstructionMismatch):
            decode_text(payload, OTHER)

    def test_passthrough(self):
        assert decode_text("hello", DEFAULT_LAYERS) == "hello"

    def test_even_layer(self):
        with pytest.raises(InvalidLayer):
            encode_text("Good day", [(2, 0)])


class TestMalformed:

    @pytest.mark.parametrize("payload", [
        "G1:",
        "G1:0000000000000000",
        "G1:zzzzzzzzzzzzzzzz.811c9dc5",
        "G1:0000000000000000.811c9dc",
        "G1:-000000000000000.811c9dc5",
        "G1:0000000000000001.811c9dc5",
    ])
    def test_bad_payload(self, payload):
        with pytest.raises(PayloadFormatError):
            decode_text(payload, DEFAULT_LAYERS)

    def test_length_block_mismatch(self):
        payload = encode_text("Good day", DEFAULT_LAYERS)
        tampered = PREFIX + "0000000000000009" + payload[len(PREFIX) + 16:]
        with pytest.raises(PayloadFormatError):
            decode_text(tampered, DEFAULT_LAYERS)

    def test_checksum_tamper(self):
        payload = encode_text("Good day", DEFAULT_LAYERS)
        bad_crc = f"{fnv1a32(b'Good dax'):08x}"
        with pytest.raises(ReconstructionMismatch):
            decode_text(payload[:-8] + bad_crc, DEFAULT_LAYERS)

    def test_non_zero_padding(self):
        # a full 8-byte block relabelled as 3 bytes leaves "defgh" as padding
        payload = encode_text("abcdefgh", DEFAULT_LAYERS)
        words = payload[len(PREFIX):].split(SEP)
        words[0] = "0000000000000003"
        words[-1] = f"{fnv1a32(b'abc'):08x}"
        with pytest.raises(PayloadFormatError):
            decode_text(PREFIX + SEP.join(words), DEFAULT_LAYERS)

    def test_empty_text(self):
        assert decode_text("G1:0000000000000000.811c9dc5", DEFAULT_LAYERS) == ""
