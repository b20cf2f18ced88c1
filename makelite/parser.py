"""
Turn a token stream into a variable table and an ordered rule list.

Nothing is expanded here: variable values, rule targets, prerequisites and
recipes keep their raw makefile syntax. See makelite.expander.
"""
import logging

from makelite import errors, lexer
from makelite.basic import Variable, Rule, DEFAULT_LOCATION, COMMENT, IDENTIFIER, OPERATOR, RVALUE, RECIPE

_log = logging.getLogger('makelite.parser')


class Variables(object):
    """
    An insertion-ordered mapping from variable names to Variable instances.
    Setting a variable that already exists replaces it in place.

    A Variables object with a parent falls back to the parent for names it
    doesn't define; this is how automatic variables are layered over the
    makefile variables.
    """

    __slots__ = ('parent', '_map')

    def __init__(self, parent=None):
        self._map = {}
        self.parent = parent

    @staticmethod
    def builtin():
        """
        A fresh table holding the built-in default variables.
        """
        v = Variables()
        v.set('SHELL', '/bin/sh', DEFAULT_LOCATION)
        return v

    def get(self, name):
        """
        Get the named Variable, or None if it isn't set here or in a parent.
        """
        v = self._map.get(name)
        if v is None and self.parent is not None:
            return self.parent.get(name)

        return v

    def set(self, name, value, loc, flavor=Variable.FLAVOR_RECURSIVE):
        self._map[name] = Variable(name, value, loc, flavor)

    def rekey(self, namefunc):
        """
        Rename every variable to namefunc(variable), keeping definition order.
        If two variables end up with the same name, the later one wins.
        """
        m = {}
        for v in self._map.values():
            v.name = namefunc(v)
            m[v.name] = v
        self._map = m

    def names(self):
        return list(self._map.keys())

    def __iter__(self):
        return iter(list(self._map.values()))

    def __contains__(self, name):
        return name in self._map

    def __len__(self):
        return len(self._map)

    def __repr__(self):
        return "<Variables %r>" % (self._map,)


def parse(tokens):
    """
    Parse a token list into (Variables, [Rule, ...]).
    """
    variables = Variables.builtin()
    rules = []
    currule = None

    i = 0
    ntokens = len(tokens)
    while i < ntokens:
        t = tokens[i]
        i += 1

        if t.kind == COMMENT:
            continue

        if t.kind == RECIPE:
            if currule is None:
                raise errors.SyntaxError("unexpected recipe", t.loc)
            currule.recipes.append(t.text)
            continue

        if t.kind == OPERATOR:
            raise errors.SyntaxError("unexpected op: %s" % (t.text,), t.loc)

        if t.kind == RVALUE:
            raise errors.SyntaxError("unexpected value: %s" % (t.text,), t.loc)

        assert t.kind == IDENTIFIER

        # if we encountered real makefile syntax, the current rule is over
        currule = None

        if i == ntokens or tokens[i].kind != OPERATOR:
            raise errors.SyntaxError("missing separator", t.loc)

        op = tokens[i]
        i += 1

        value = ''
        if i < ntokens and tokens[i].kind == RVALUE and tokens[i].loc.line == op.loc.line:
            value = tokens[i].text
            i += 1

        if op.text == '=':
            if value.startswith(' '):
                value = value[1:]
            if t.text in variables:
                _log.debug("%s: redefining variable '%s'", t.loc, t.text)
            variables.set(t.text, value, t.loc)
        else:
            assert op.text == ':'
            currule = Rule(t.text, value.strip(), t.loc)
            rules.append(currule)

    return variables, rules

def parsestring(s, filename='-'):
    """
    Tokenize and parse a string containing makefile data.
    """
    return parse(lexer.tokenize(s, filename))
