"""
Tests for WordBuffer
=====================
"""

from modules.spelling.word_buffer import WordBuffer


class TestWordBuffer:

    def test_starts_empty(self):
        buf = WordBuffer()
        assert buf.current() == ""
        assert buf.is_empty
        assert buf.last is None
        assert len(buf) == 0

    def test_append_distinct_letters(self):
        buf = WordBuffer()
        assert buf.append("C")
        assert buf.append("A")
        assert buf.append("B")
        assert buf.current() == "CAB"
        assert buf.last == "B"

    def test_repeated_letter_suppressed(self):
        buf = WordBuffer()
        buf.append("H")
        buf.append("E")
        buf.append("L")
        assert buf.append("L") is False
        assert buf.current() == "HEL"

    def test_letter_can_reappear_after_another(self):
        buf = WordBuffer("AB")
        assert buf.append("A")
        assert buf.current() == "ABA"

    def test_empty_letter_rejected(self):
        buf = WordBuffer("A")
        assert buf.append("") is False
        assert buf.append(None) is False
        assert buf.current() == "A"

    def test_clear(self):
        buf = WordBuffer("HELLO")
        buf.clear()
        assert buf.current() == ""
        # Nothing left to suppress against
        assert buf.append("O")

    def test_string_forms(self):
        buf = WordBuffer("OK")
        assert str(buf) == "OK"
        assert repr(buf) == "WordBuffer('OK')"
