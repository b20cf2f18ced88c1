import unittest

from makelite import lexer
from makelite.basic import COMMENT, IDENTIFIER, OPERATOR, RVALUE, RECIPE

def spans(tokens):
    return [(t.kind, t.text, t.loc.line, t.loc.start, t.loc.end) for t in tokens]

class EnumerateLinesTest(unittest.TestCase):
    def test_plain(self):
        self.assertEqual(list(lexer.enumeratelines("a\nb\n")),
                         [("a", 1), ("b", 2), ("", 3)])

    def test_continuation(self):
        lines = list(lexer.enumeratelines("a = b   \\\n   c\nd\n"))
        self.assertEqual(lines[0], ("a = b c", 1))
        self.assertEqual(lines[1], ("d", 3))

    def test_escaped_backslash(self):
        lines = list(lexer.enumeratelines("a = b\\\\\nc = d"))
        self.assertEqual(lines, [("a = b\\\\", 1), ("c = d", 2)])

    def test_three_backslashes(self):
        lines = list(lexer.enumeratelines("a\\\\\\\nb"))
        self.assertEqual(lines, [("a\\\\ b", 1)])

class TokenizeTest(unittest.TestCase):
    def test_assignment(self):
        tokens = lexer.tokenize("foo = bar", 'Makefile')
        self.assertEqual(spans(tokens), [
            (IDENTIFIER, 'foo', 1, 0, 3),
            (OPERATOR, '=', 1, 4, 4),
            (RVALUE, ' bar', 1, 5, 8),
        ])
        self.assertEqual(tokens[0].loc.path, 'Makefile')

    def test_reference_in_identifier(self):
        tokens = lexer.tokenize("$(f\too):")
        self.assertEqual(spans(tokens), [
            (IDENTIFIER, '$(f\too)', 1, 0, 6),
            (OPERATOR, ':', 1, 7, 7),
        ])

    def test_operator_inside_reference(self):
        tokens = lexer.tokenize("a$(b:c=d) = x")
        self.assertEqual(tokens[0].text, 'a$(b:c=d)')
        self.assertEqual(tokens[1].text, '=')
        self.assertEqual(tokens[1].loc.start, 10)

    def test_recipe(self):
        tokens = lexer.tokenize("foo:\n\tid\n")
        self.assertEqual(spans(tokens)[2], (RECIPE, 'id', 2, 0, 2))

    def test_recipe_keeps_hash(self):
        tokens = lexer.tokenize("foo:\n\techo # not a comment\n")
        self.assertEqual(tokens[2].kind, RECIPE)
        self.assertEqual(tokens[2].text, 'echo # not a comment')

    def test_comment_line(self):
        tokens = lexer.tokenize("  # hello\nfoo = bar\n")
        self.assertEqual(spans(tokens)[0], (COMMENT, '# hello', 1, 0, 8))

    def test_trailing_comment(self):
        tokens = lexer.tokenize("a = b # c")
        self.assertEqual(spans(tokens), [
            (IDENTIFIER, 'a', 1, 0, 1),
            (OPERATOR, '=', 1, 2, 2),
            (RVALUE, ' b ', 1, 3, 5),
            (COMMENT, '# c', 1, 6, 8),
        ])

    def test_escaped_hash(self):
        tokens = lexer.tokenize("a = b\\#c")
        self.assertEqual(tokens[2].text, ' b#c')
        self.assertEqual(len(tokens), 3)

    def test_comment_keeps_rule_open(self):
        tokens = lexer.tokenize("foo:\n# c\n\tx\n")
        self.assertEqual([t.kind for t in tokens],
                         [IDENTIFIER, OPERATOR, COMMENT, RECIPE])

    def test_blank_line_closes_rule(self):
        tokens = lexer.tokenize("foo:\n\n\tbar = baz\n")
        self.assertEqual([t.kind for t in tokens],
                         [IDENTIFIER, OPERATOR, IDENTIFIER, OPERATOR, RVALUE])
        self.assertEqual(tokens[2].text, 'bar')

    def test_orphan_recipe(self):
        tokens = lexer.tokenize("\nfoo=\n\thello\n")
        self.assertEqual(spans(tokens)[2], (RECIPE, 'hello', 3, 0, 5))

    def test_missing_operator(self):
        tokens = lexer.tokenize("foo\n")
        self.assertEqual(spans(tokens), [(IDENTIFIER, 'foo', 1, 0, 2)])

    def test_continued_line_location(self):
        tokens = lexer.tokenize("a = b \\\n c\nd = e\n")
        self.assertEqual(tokens[2].text, ' b c')
        self.assertEqual(tokens[3].loc.line, 3)

class ToSourceTest(unittest.TestCase):
    def test_roundtrip(self):
        s = "a = b # c\n\n  # comment\nfoo: a\n\techo $@\n"
        self.assertEqual(lexer.tosource(s, lexer.tokenize(s)),
                         "a = b # c\n  # comment\nfoo: a\n\techo $@")

    def test_relex(self):
        s = "CC = cc\n$(x)y: a $(b:c=d)\n\t$(CC) -o $@ $^\nz = 1 # one\n"
        tokens = lexer.tokenize(s)
        again = lexer.tokenize(lexer.tosource(s, tokens))
        self.assertEqual(spans(again), spans(tokens))

if __name__ == '__main__':
    unittest.main()
