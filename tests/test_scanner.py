"""
Scanner Tests — comment stripping, block-comment state, position mapping.

Validates that:
  1. // and # truncate the line outside strings
  2. String literals are opaque (comment markers inside survive verbatim)
  3. /* */ spans are removed on one line and carried across lines
  4. Cleaned offsets map back to original columns and vice versa
"""

import os
import sys
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from pangy_core.scanner import (
    NOT_FOUND, map_offset, mask_strings, scan_line, scan_source,
    strip_comments, strip_comments_stateful,
)


class TestStripComments(unittest.TestCase):

    def test_comment_only_line_is_empty(self):
        self.assertEqual(strip_comments("// just a note"), "")
        self.assertEqual(strip_comments("# also a note"), "")

    def test_trailing_line_comment(self):
        self.assertEqual(strip_comments("var x int // counter"), "var x int ")
        self.assertEqual(strip_comments("var x int # counter"), "var x int ")

    def test_string_literal_preserved(self):
        line = 'print("// not a comment")'
        self.assertEqual(strip_comments(line), line)
        line = "print('# not a comment either')"
        self.assertEqual(strip_comments(line), line)

    def test_escaped_quote_stays_inside_string(self):
        line = r'x = "a\"b // c" // tail'
        self.assertEqual(strip_comments(line), r'x = "a\"b // c" ')

    def test_block_comment_same_line(self):
        """Text before and after the span is kept and concatenated."""
        self.assertEqual(strip_comments("a /* b */ c"), "a  c")

    def test_block_comment_inside_string_ignored(self):
        line = 'print("/* keep */")'
        self.assertEqual(strip_comments(line), line)

    def test_stateful_open_and_close(self):
        cleaned, in_block = strip_comments_stateful("x /* start", False)
        self.assertEqual(cleaned, "x ")
        self.assertTrue(in_block)

        cleaned, in_block = strip_comments_stateful("still comment", in_block)
        self.assertEqual(cleaned, "")
        self.assertTrue(in_block)

        cleaned, in_block = strip_comments_stateful("end */ y", in_block)
        self.assertEqual(cleaned, " y")
        self.assertFalse(in_block)


class TestScanSource(unittest.TestCase):

    def test_block_state_threads_through_lines(self):
        lines = scan_source("x /* start\nundefined_thing\nend */ y")
        self.assertEqual([s.cleaned for s in lines], ["x ", "", " y"])
        self.assertTrue(lines[1].starts_in_comment)
        self.assertTrue(lines[1].ends_in_comment)
        self.assertFalse(lines[2].ends_in_comment)

    def test_line_numbers_are_one_indexed(self):
        lines = scan_source("a\r\nb\nc")
        self.assertEqual([s.number for s in lines], [1, 2, 3])
        self.assertEqual(lines[0].original, "a")

    def test_stripped(self):
        self.assertEqual(scan_line("   // nothing").stripped, "")


class TestPositionMapping(unittest.TestCase):

    def test_offset_after_block_comment(self):
        line = "a /* b */ c"
        cleaned = strip_comments(line)
        self.assertEqual(map_offset(line, cleaned.index("c")), line.index("c"))

    def test_offset_after_leading_comment(self):
        line = "/* c */ print(y)"
        cleaned = strip_comments(line)
        self.assertEqual(map_offset(line, cleaned.index("y")), 14)

    def test_out_of_range_is_not_found(self):
        self.assertEqual(map_offset("abc", 10), NOT_FOUND)
        self.assertEqual(map_offset("abc", -1), NOT_FOUND)

    def test_one_past_end(self):
        self.assertEqual(map_offset("abc", 3), 3)

    def test_inverse_mapping(self):
        scanned = scan_line("a /* b */ c")
        self.assertEqual(scanned.to_cleaned(10), 3)
        self.assertEqual(scanned.to_cleaned(5), NOT_FOUND)

    def test_mapping_inside_continued_block(self):
        line = "end */ z"
        self.assertEqual(map_offset(line, 1, in_block_comment=True), line.index("z"))


class TestMaskStrings(unittest.TestCase):

    def test_blank_preserves_length(self):
        self.assertEqual(mask_strings('print("hi")'), "print(    )")

    def test_keep_quotes(self):
        self.assertEqual(mask_strings('f("ab", x)', keep_quotes=True), 'f("  ", x)')

    def test_unterminated_literal_masked_to_end(self):
        self.assertEqual(mask_strings('print("hello world'), "print(            ")
        self.assertEqual(mask_strings('f("ab', keep_quotes=True), 'f("  ')


if __name__ == "__main__":
    unittest.main()
