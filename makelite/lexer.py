"""
Split makefile text into tokens.

The lexer works on logical lines: physical lines joined by backslash-newline
continuations. Each logical line produces at most a handful of tokens:

* a comment line becomes one comment token
* a tab-indented line following a rule header becomes one recipe token
* anything else is scanned for the first '=' or ':' outside of a macro reference
  and becomes identifier, operator and (optionally) rvalue tokens. An unescaped
  '#' ends the statement and the rest of the line is a comment token.
"""
import re

from makelite.basic import Location, Token, COMMENT, IDENTIFIER, OPERATOR, RVALUE, RECIPE

_linere = re.compile(r'\\*\n')
_continuation = re.compile(r'[ \t]*\\\n[ \t]*')
_skipws = re.compile(r'\S')

_matchingbrace = {
    '(': ')',
    '{': '}',
}

def enumeratelines(s):
    """
    Enumerate logical lines in a string, joining line continuations.

    @yields (line, lineno) where lineno is the number of the first physical line.
    """
    off = 0
    lineno = 1
    curlines = 0
    for m in _linere.finditer(s):
        curlines += 1
        start, end = m.span(0)

        if (start - end) % 2 == 0:
            # odd number of backslashes is a continuation
            continue

        yield _continuation.sub(' ', s[off:end - 1]), lineno

        lineno += curlines
        curlines = 0
        off = end

    yield _continuation.sub(' ', s[off:]), lineno

def findtoplevel(line, offset, stopon):
    """
    Find the first character in `stopon` at or after offset which is not inside
    a $(...) or ${...} reference. Escaped hash marks are skipped.

    @returns the offset of the character, or -1
    """
    closers = []
    i = offset
    llen = len(line)
    while i < llen:
        c = line[i]
        if c == '\\' and i + 1 < llen and line[i + 1] == '#':
            i += 2
            continue

        if c == '$':
            if i + 1 < llen and line[i + 1] in _matchingbrace:
                closers.append(_matchingbrace[line[i + 1]])
            # $$, $x and $( all consume the following character
            i += 2
            continue

        if closers:
            if c == closers[-1]:
                closers.pop()
            elif c in _matchingbrace:
                closers.append(_matchingbrace[c])
        elif c in stopon:
            return i

        i += 1

    return -1

def _unescape(s):
    return s.replace('\\#', '#')

def _tokenizeline(line, loc, tokens):
    """
    Tokenize a statement line. @returns the operator found, or None
    """
    path, lineno = loc
    end = len(line)

    hashoff = -1
    opoff = findtoplevel(line, 0, '=:#')
    if opoff != -1 and line[opoff] == '#':
        hashoff = opoff
        opoff = -1

    if opoff == -1:
        if hashoff != -1:
            end = hashoff

        if line[0] == '\t':
            # a recipe line with no rule to belong to; the parser complains about it
            tokens.append(Token(RECIPE, line[1:], Location(path, lineno, 0, len(line) - 1)))
            return None

        tokens.append(Token(IDENTIFIER, _unescape(line[:end].strip()), Location(path, lineno, 0, end - 1)))
        if hashoff != -1:
            tokens.append(Token(COMMENT, line[hashoff:], Location(path, lineno, hashoff, len(line) - 1)))
        return None

    op = line[opoff]
    ident = line[:opoff]
    if ident.strip() != '':
        tokens.append(Token(IDENTIFIER, _unescape(ident.strip()), Location(path, lineno, 0, opoff - 1)))
    tokens.append(Token(OPERATOR, op, Location(path, lineno, opoff, opoff)))

    hashoff = findtoplevel(line, opoff + 1, '#')
    if hashoff != -1:
        end = hashoff

    if end > opoff + 1:
        tokens.append(Token(RVALUE, _unescape(line[opoff + 1:end]), Location(path, lineno, opoff + 1, end - 1)))

    if hashoff != -1:
        tokens.append(Token(COMMENT, line[hashoff:], Location(path, lineno, hashoff, len(line) - 1)))

    return op

def tokenize(s, path='-'):
    """
    Tokenize makefile text into a list of Token.

    @param path the source name recorded in token locations.
    """
    tokens = []
    inrule = False

    for line, lineno in enumeratelines(s):
        offset = _skipws.search(line)
        if offset is None:
            # a blank line closes the current rule
            inrule = False
            continue

        if inrule and line[0] == '\t':
            tokens.append(Token(RECIPE, line[1:], Location(path, lineno, 0, len(line) - 1)))
            continue

        if line[offset.start(0)] == '#':
            tokens.append(Token(COMMENT, line.strip(), Location(path, lineno, 0, len(line) - 1)))
            continue

        op = _tokenizeline(line, (path, lineno), tokens)
        inrule = op == ':'

    return tokens

def tosource(s, tokens):
    """
    Rebuild the text of every tokenized line from the token spans. Blank lines,
    which produce no tokens, are not reproduced.
    """
    lines = dict((lineno, line) for line, lineno in enumeratelines(s))

    out = []
    curline = None
    for t in tokens:
        line = lines[t.loc.line]
        if t.loc.line != curline:
            out.append('')
            curline = t.loc.line
        out[-1] += line[t.loc.start:t.loc.end + 1]

    return '\n'.join(out)
