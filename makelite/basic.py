"""
Basic type definitions. Do not introduce dependencies to other makelite modules,
or you risk circular dependencies.
"""

class Location(object):
    """
    A location within a makefile.

    Locations are source/line plus the inclusive start and end columns of a
    token within its logical line. Columns count characters from 0.
    """
    __slots__ = ('path', 'line', 'start', 'end')

    def __init__(self, path, line, start=0, end=0):
        self.path = path
        self.line = line
        self.start = start
        self.end = end

    def __str__(self):
        return "%s:%s" % (self.path, self.line)

    def __repr__(self):
        return "%s:%s:%s:%s" % (self.path, self.line, self.start, self.end)

    def __eq__(self, other):
        if not isinstance(other, Location):
            return False

        return (self.path, self.line, self.start, self.end) == \
            (other.path, other.line, other.start, other.end)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((self.path, self.line, self.start, self.end))

# built-in variables are defined here
DEFAULT_LOCATION = Location('def', -1)

COMMENT = 'comment'
IDENTIFIER = 'identifier'
OPERATOR = 'operator'
RVALUE = 'rvalue'
RECIPE = 'recipe'

TOKEN_KINDS = frozenset((COMMENT, IDENTIFIER, OPERATOR, RVALUE, RECIPE))

_shortkinds = {
    COMMENT: 'comment',
    IDENTIFIER: 'id',
    OPERATOR: 'op',
    RVALUE: 'rvalue',
    RECIPE: 'recipe',
}


class Token(object):
    """
    A lexical unit of a makefile: its kind, its text and where it came from.

    Identifier and rvalue text may still contain unexpanded macro syntax.
    """
    __slots__ = ('kind', 'text', 'loc')

    def __init__(self, kind, text, loc):
        assert kind in TOKEN_KINDS, "unknown token kind %r" % (kind,)
        self.kind = kind
        self.text = text
        self.loc = loc

    def describe(self):
        return "%r\t%s\t%s" % (self.loc, _shortkinds[self.kind], self.text)

    def __repr__(self):
        return "Token<%s>" % (self.describe(),)

    def __eq__(self, other):
        if not isinstance(other, Token):
            return False

        return self.kind == other.kind and self.text == other.text \
            and self.loc == other.loc

    def __ne__(self, other):
        return not self.__eq__(other)


class Variable(object):
    """
    A named makefile variable. Recursive variables hold raw makefile syntax
    which is expanded on use, simple variables hold literal text.
    """
    __slots__ = ('name', 'value', 'loc', 'flavor')

    FLAVOR_RECURSIVE = 0
    FLAVOR_SIMPLE = 1

    def __init__(self, name, value, loc, flavor=FLAVOR_RECURSIVE):
        self.name = name
        self.value = value
        self.loc = loc
        self.flavor = flavor

    def __repr__(self):
        return "Variable<%s>(%r=%r)" % (self.loc, self.name, self.value)


class Rule(object):
    """
    A rule as written in the makefile: a target, a whitespace separated
    prerequisite list and the recipe lines that follow the rule header.
    """
    __slots__ = ('target', 'deps', 'recipes', 'loc')

    def __init__(self, target, deps, loc, recipes=None):
        self.target = target
        self.deps = deps
        self.loc = loc
        if recipes is None:
            recipes = []
        self.recipes = recipes

    def __repr__(self):
        return "Rule<%s>(%r: %r, %r)" % (self.loc, self.target, self.deps, self.recipes)


class Pattern(object):
    """
    A pattern is a string, possibly with a % substitution character. From the GNU make manual:

    '%' characters in pattern rules can be quoted with preceding backslashes ('\\'). Backslashes that
    would otherwise quote '%' characters can be quoted with more backslashes.
    """

    __slots__ = ('data',)

    def __init__(self, s):
        r = []
        i = 0
        slen = len(s)
        while i < slen:
            c = s[i]
            if c == '\\' and i + 1 < slen:
                nc = s[i + 1]
                if nc == '%':
                    r.append('%')
                    i += 1
                elif nc == '\\':
                    r.append('\\')
                    i += 1
                else:
                    r.append(c)
            elif c == '%':
                self.data = (''.join(r), s[i+1:])
                return
            else:
                r.append(c)
            i += 1

        self.data = (''.join(r),)

    def ispattern(self):
        return len(self.data) == 2

    def hasslash(self):
        return '/' in ''.join(self.data)

    def __hash__(self):
        return self.data.__hash__()

    def __eq__(self, o):
        return isinstance(o, Pattern) and self.data == o.data

    def __ne__(self, o):
        return not self.__eq__(o)

    def match(self, word):
        """
        Match this search pattern against a word (string).

        @returns None if the word doesn't match, or the matching stem.
                      If this is a %-less pattern, the stem will always be ''
        """
        d = self.data
        if len(d) == 1:
            if word == d[0]:
                return ''
            return None

        d0, d1 = d
        l1 = len(d0)
        l2 = len(d1)
        if len(word) >= l1 + l2 and word.startswith(d0) and word.endswith(d1):
            if l2 == 0:
                return word[l1:]
            return word[l1:-l2]

        return None

    def resolve(self, dir, stem):
        if self.ispattern():
            return dir + self.data[0] + stem + self.data[1]

        return self.data[0]

    def subst(self, replacement, word):
        """
        Given a word, replace the current pattern with the replacement pattern, a la 'patsubst'.
        Words that don't match are returned unchanged.
        """
        stem = self.match(word)
        if stem is None:
            return word

        if not self.ispattern():
            # if we're not a pattern, the replacement is not parsed as a pattern either
            return replacement

        return Pattern(replacement).resolve('', stem)

    def __repr__(self):
        return "<Pattern with data %r>" % (self.data,)
