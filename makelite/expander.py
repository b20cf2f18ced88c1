"""
Macro expansion.

Raw makefile text is parsed into an Expansion: an ordered list of literal
strings and references (variable references, substitution references and
function calls). Resolving an Expansion writes its text to a file-like object,
recursively resolving every reference it contains.

Resolution carries `setting`, the list of variables whose values are being
resolved. A variable that appears in its own `setting` chain references itself.

Recipes are expanded ahead of time in "escape" mode: automatic variables and
anything computed from them are written back as makefile source, and literal
dollar signs are re-escaped, so the recipe can be expanded once more when the
automatic variables are known.
"""
import logging, re
from io import StringIO

from makelite import errors
from makelite.basic import Variable, Pattern
from makelite.functions import functionmap
from makelite.parser import Variables

_log = logging.getLogger('makelite.expander')

AUTOMATIC_VARIABLES = frozenset(['@', '<', '*', '^', '+', '?'])

def isautomatic(vname):
    """
    Whether vname is an automatic variable such as $@ or one of its D/F variants like $(@D).
    """
    if vname in AUTOMATIC_VARIABLES:
        return True

    return len(vname) == 2 and vname[0] in AUTOMATIC_VARIABLES and vname[1] in 'DF'

def _escape(s):
    return s.replace('$', '$$')

def _unescape(s):
    return s.replace('$$', '$')

def _isdeferred(s):
    """
    Whether text produced in escape mode still holds a reference to expand later.
    """
    return '$' in s.replace('$$', '')

class BaseExpansion(object):
    """Base class for expansions.

    A make expansion is the parsed representation of a string, which may
    contain references to other elements.
    """

    def functions(self, descend=False):
        """Obtain all references inside this expansion.

        If `descend` is True, it will descend into child expansions and
        extract all references in the tree.
        """
        return iter(())

    def resolvestr(self, expander, variables, setting=(), escape=False):
        fd = StringIO()
        self.resolve(expander, variables, fd, setting, escape)
        return fd.getvalue()


class StringExpansion(BaseExpansion):
    """An Expansion representing a static string.

    This essentially wraps a single str instance.
    """

    __slots__ = ('loc', 's',)
    simple = True

    def __init__(self, s, loc):
        assert isinstance(s, str)
        self.s = s
        self.loc = loc

    def resolve(self, expander, variables, fd, setting=(), escape=False):
        if escape:
            fd.write(_escape(self.s))
        else:
            fd.write(self.s)

    def __repr__(self):
        return "Exp<%s>(%r)" % (self.loc, self.s)

    def to_source(self):
        return _escape(self.s)


class Expansion(BaseExpansion, list):
    """A representation of parsed makefile text.

    This is effectively an ordered list of literal strings and references,
    stored as (element, isfunc) tuples.
    """

    simple = False

    def __init__(self, loc=None):
        list.__init__(self)
        self.loc = loc

    def appendstr(self, s):
        assert isinstance(s, str)
        if s == '':
            return

        self.append((s, False))

    def appendfunc(self, func):
        assert isinstance(func, Reference)
        self.append((func, True))

    def concat(self, o):
        """Concatenate the other expansion on to this one."""
        if o.simple:
            self.appendstr(o.s)
        else:
            self.extend(o)

    def finish(self):
        # Merge any adjacent literal strings:
        strings = []
        elements = []
        for (e, isfunc) in self:
            if isfunc:
                if strings:
                    elements.append((''.join(strings), False))
                    strings = []
                elements.append((e, True))
            else:
                strings.append(e)

        if not elements:
            # This can only happen if there were no function elements.
            return StringExpansion(''.join(strings), self.loc)

        if strings:
            elements.append((''.join(strings), False))

        self[:] = elements
        return self

    def resolve(self, expander, variables, fd, setting=(), escape=False):
        for e, isfunc in self:
            if isfunc:
                e.resolve(expander, variables, fd, setting, escape)
            elif escape:
                fd.write(_escape(e))
            else:
                fd.write(e)

    def functions(self, descend=False):
        for e, is_func in self:
            if not is_func:
                continue

            yield e

            if descend:
                for exp in e.expansions():
                    for f in exp.functions(descend=True):
                        yield f

    def __repr__(self):
        return "<Expansion with elements: %r>" % ([e for e, isfunc in self],)

    def to_source(self):
        parts = []
        for e, is_func in self:
            if is_func:
                parts.append(e.to_source())
            else:
                parts.append(_escape(e))

        return ''.join(parts)


class Reference(object):
    """
    A reference inside an expansion: something introduced by a dollar sign.

    In escape mode a reference whose value needs an automatic variable is
    written back as source, built from its escaped parts. Anything else is
    resolved and its value escaped.
    """

    __slots__ = ('loc',)

    def expansions(self):
        """The expansions directly contained in this reference."""
        return ()

    def resolve(self, expander, variables, fd, setting, escape=False):
        if escape:
            fd.write(self.resolveescaped(expander, variables, setting))
        else:
            fd.write(self.resolvevalue(expander, variables, setting))


def resolvevariable(expander, variables, vname, fd, setting, escape=False, loc=None):
    """
    Write the value of the named variable. Unset variables fall back on the
    expander's environment lookup, then on the empty string. In escape mode
    automatic variables are written back as references.
    """
    if vname in setting:
        raise errors.CycleError("var '%s' references itself" % (vname,), loc)

    if escape and isautomatic(vname):
        if len(vname) == 1:
            fd.write('$' + vname)
        else:
            fd.write('$(%s)' % vname)
        return

    v = variables.get(vname)
    if v is None:
        value = expander.lookupenv(vname)
        if value is None:
            _log.debug("%s: variable '%s' was not set", loc, vname)
            return

        fd.write(_escape(value) if escape else value)
        return

    if v.flavor == Variable.FLAVOR_SIMPLE:
        fd.write(_escape(v.value) if escape else v.value)
        return

    expander.parsemacro(v.value, v.loc).resolve(expander, variables, fd, tuple(setting) + (vname,), escape)


class VariableRef(Reference):
    """$(VARNAME), ${VARNAME} or $V. The name may itself contain references."""

    __slots__ = ('vname',)

    def __init__(self, loc, vname):
        self.loc = loc
        assert isinstance(vname, (Expansion, StringExpansion))
        self.vname = vname

    def resolve(self, expander, variables, fd, setting, escape=False):
        vname = self.vname.resolvestr(expander, variables, setting, escape)
        if escape:
            if _isdeferred(vname):
                fd.write('$(%s)' % vname)
                return
            vname = _unescape(vname)

        resolvevariable(expander, variables, vname, fd, setting, escape, self.loc)

    def to_source(self):
        if isinstance(self.vname, StringExpansion):
            if len(self.vname.s) == 1 and self.vname.s not in '$({':
                return '$%s' % self.vname.s

            return '$(%s)' % self.vname.to_source()

        return '$(%s)' % self.vname.to_source()

    def expansions(self):
        return (self.vname,)

    def __repr__(self):
        return "VariableRef<%s>(%r)" % (self.loc, self.vname)


class SubstitutionRef(Reference):
    """$(VARNAME:.c=.o) and $(VARNAME:%.c=%.o)"""

    __slots__ = ('vname', 'substfrom', 'substto')

    def __init__(self, loc, varname, substfrom, substto):
        self.loc = loc
        self.vname = varname
        self.substfrom = substfrom
        self.substto = substto

    @staticmethod
    def subst(value, substfrom, substto):
        f = Pattern(substfrom)
        if not f.ispattern():
            f = Pattern('%' + substfrom)
            substto = '%' + substto

        return ' '.join([f.subst(substto, word) for word in value.split()])

    def resolvevalue(self, expander, variables, setting):
        vname, substfrom, substto = [e.resolvestr(expander, variables, setting)
                                     for e in self.expansions()]

        fd = StringIO()
        resolvevariable(expander, variables, vname, fd, setting, loc=self.loc)
        return self.subst(fd.getvalue(), substfrom, substto)

    def resolveescaped(self, expander, variables, setting):
        parts = [e.resolvestr(expander, variables, setting, True)
                 for e in self.expansions()]
        source = '$(%s:%s=%s)' % tuple(parts)
        for p in parts:
            if _isdeferred(p):
                return source

        vname, substfrom, substto = [_unescape(p) for p in parts]

        fd = StringIO()
        resolvevariable(expander, variables, vname, fd, setting, True, self.loc)
        value = fd.getvalue()
        if _isdeferred(value):
            return source

        return _escape(self.subst(_unescape(value), substfrom, substto))

    def to_source(self):
        return '$(%s:%s=%s)' % (
            self.vname.to_source(),
            self.substfrom.to_source(),
            self.substto.to_source())

    def expansions(self):
        return (self.vname, self.substfrom, self.substto)

    def __repr__(self):
        return "SubstitutionRef<%s>(%r:%r=%r)" % (
            self.loc, self.vname, self.substfrom, self.substto,)


class FunctionRef(Reference):
    """
    A call of a registered function: $(name arg1,arg2,...). The arguments are
    expanded before the function sees them.
    """

    __slots__ = ('name', 'function', '_arguments', 'toofew')

    def __init__(self, loc, name, function):
        self.loc = loc
        self.name = name
        self.function = function
        self._arguments = []
        self.toofew = False

    def __len__(self):
        return len(self._arguments)

    def __getitem__(self, key):
        return self._arguments[key]

    def append(self, arg):
        assert isinstance(arg, (Expansion, StringExpansion))
        self._arguments.append(arg)

    def acceptsmore(self):
        """Whether a comma at this point starts a new argument."""
        maxargs = self.function.maxargs
        return maxargs == 0 or len(self._arguments) + 1 < maxargs

    def setup(self):
        argc = len(self._arguments)
        if argc < self.function.minargs:
            _log.warning("%s: not enough arguments to function %s, requires %s",
                         self.loc, self.name, self.function.minargs)
            self.toofew = True

    def resolvevalue(self, expander, variables, setting):
        if self.toofew:
            return ''

        args = [a.resolvestr(expander, variables, setting) for a in self._arguments]
        return self.function.resolve(args)

    def resolveescaped(self, expander, variables, setting):
        if self.toofew:
            return ''

        args = [a.resolvestr(expander, variables, setting, True) for a in self._arguments]
        for a in args:
            if _isdeferred(a):
                return '$(%s %s)' % (self.name, ','.join(args))

        return _escape(self.function.resolve([_unescape(a) for a in args]))

    def expansions(self):
        return tuple(self._arguments)

    def to_source(self):
        return '$(%s %s)' % (self.name, ','.join([a.to_source() for a in self._arguments]))

    def __repr__(self):
        return "%s<%s>(%r)" % (
            self.name, self.loc,
            ','.join([repr(a) for a in self._arguments]),
            )


_PARSESTATE_TOPLEVEL = 0    # at the top level
_PARSESTATE_FUNCTION = 1    # expanding a function call
_PARSESTATE_VARNAME = 2     # expanding a variable expansion.
_PARSESTATE_SUBSTFROM = 3   # expanding a variable expansion substitution "from" value
_PARSESTATE_SUBSTTO = 4     # expanding a variable expansion substitution "to" value
_PARSESTATE_PARENMATCH = 5  # inside nested parentheses/braces that must be matched

class ParseStackFrame(object):
    __slots__ = ('parsestate', 'parent', 'expansion', 'openbrace', 'closebrace', 'function', 'varname', 'substfrom')

    def __init__(self, parsestate, parent, expansion, openbrace, closebrace, function=None):
        self.parsestate = parsestate
        self.parent = parent
        self.expansion = expansion
        self.openbrace = openbrace
        self.closebrace = closebrace
        self.function = function

_matchingbrace = {
    '(': ')',
    '{': '}',
    }

def functionre(functions):
    """
    A regular expression matching a registered function name followed by whitespace,
    or None if there are no functions.
    """
    if not len(functions):
        return None

    names = sorted(functions.keys(), key=len, reverse=True)
    return re.compile(r'(%s)\s+' % '|'.join([re.escape(n) for n in names]))

def parsemacro(s, loc=None, functions=functionmap, funcre=None):
    """
    Parse makefile text into an Expansion (or a StringExpansion if it contains
    no references).

    @param functions the function registry, used to tell function calls from
           variable references.
    """
    if funcre is None:
        funcre = functionre(functions)

    stacktop = ParseStackFrame(_PARSESTATE_TOPLEVEL, None, Expansion(loc=loc),
                               openbrace=None, closebrace=None)

    i = 0
    slen = len(s)
    while i < slen:
        if stacktop.parsestate == _PARSESTATE_TOPLEVEL:
            j = s.find('$', i)
            if j == -1:
                stacktop.expansion.appendstr(s[i:])
                break

            stacktop.expansion.appendstr(s[i:j])
            i = j

        c = s[i]
        if c == '$':
            if i + 1 == slen:
                # an unterminated $ expands to nothing
                break

            c = s[i + 1]
            if c == '$':
                stacktop.expansion.appendstr('$')
                i += 2
            elif c in _matchingbrace:
                closebrace = _matchingbrace[c]
                m = funcre is not None and funcre.match(s, i + 2)
                if m:
                    fname = m.group(1)
                    fn = FunctionRef(loc, fname, functions[fname])
                    stacktop = ParseStackFrame(_PARSESTATE_FUNCTION, stacktop,
                                               Expansion(loc=loc), c, closebrace, function=fn)
                    i = m.end(0)
                else:
                    stacktop = ParseStackFrame(_PARSESTATE_VARNAME, stacktop,
                                               Expansion(loc=loc), c, closebrace)
                    i += 2
            else:
                stacktop.expansion.appendfunc(VariableRef(loc, StringExpansion(c, loc)))
                i += 2
            continue

        parsestate = stacktop.parsestate
        i += 1

        if c == stacktop.openbrace:
            stacktop.expansion.appendstr(c)
            stacktop = ParseStackFrame(_PARSESTATE_PARENMATCH, stacktop,
                                       stacktop.expansion, c, stacktop.closebrace)
        elif c == stacktop.closebrace:
            if parsestate == _PARSESTATE_PARENMATCH:
                stacktop.expansion.appendstr(c)
                stacktop = stacktop.parent
                continue

            if parsestate == _PARSESTATE_FUNCTION:
                fn = stacktop.function
                fn.append(stacktop.expansion.finish())
                fn.setup()
            elif parsestate == _PARSESTATE_VARNAME:
                fn = VariableRef(loc, stacktop.expansion.finish())
            elif parsestate == _PARSESTATE_SUBSTFROM:
                # $(VARNAME:.ee) is probably a mistake, but make parses it as a variable name
                _log.warning("%s: Variable reference looks like substitution without =", loc)
                stacktop.varname.appendstr(':')
                stacktop.varname.concat(stacktop.expansion)
                fn = VariableRef(loc, stacktop.varname.finish())
            else:
                assert parsestate == _PARSESTATE_SUBSTTO
                fn = SubstitutionRef(loc, stacktop.varname.finish(),
                                     stacktop.substfrom.finish(), stacktop.expansion.finish())

            stacktop = stacktop.parent
            stacktop.expansion.appendfunc(fn)
        elif c == ',' and parsestate == _PARSESTATE_FUNCTION and stacktop.function.acceptsmore():
            stacktop.function.append(stacktop.expansion.finish())
            stacktop.expansion = Expansion(loc=loc)
        elif c == ':' and parsestate == _PARSESTATE_VARNAME:
            stacktop.varname = stacktop.expansion
            stacktop.parsestate = _PARSESTATE_SUBSTFROM
            stacktop.expansion = Expansion(loc=loc)
        elif c == '=' and parsestate == _PARSESTATE_SUBSTFROM:
            stacktop.substfrom = stacktop.expansion
            stacktop.parsestate = _PARSESTATE_SUBSTTO
            stacktop.expansion = Expansion(loc=loc)
        else:
            stacktop.expansion.appendstr(c)

    if stacktop.parent is not None:
        raise errors.SyntaxError("unterminated variable reference in '%s'" % (s,), loc)

    return stacktop.expansion.finish()


class Expander(object):
    """
    Expands the variables and rules produced by makelite.parser.parse.

    @param functions the function registry, makelite.functions.functionmap by default.
    @param environ a callable looking up names that aren't set in the makefile,
           returning a string or None. By default nothing is found.
    """

    def __init__(self, variables, rules, functions=None, environ=None):
        if functions is None:
            functions = functionmap

        self.variables = variables
        self.rules = rules
        self.functions = functions
        self.environ = environ
        self.values = {}
        self.expanded = False
        self._funcre = functionre(functions)
        self._parsecache = {}

    def lookupenv(self, name):
        if self.environ is None:
            return None

        return self.environ(name)

    def parsemacro(self, s, loc=None):
        key = (s, loc)
        e = self._parsecache.get(key)
        if e is None:
            e = parsemacro(s, loc, self.functions, self._funcre)
            self._parsecache[key] = e
        return e

    def evaluate(self, exp, variables=None, escape=False):
        """
        Resolve a parsed expansion into a string.

        @param variables the variables to resolve against, self.variables by default.
        @param escape keep automatic variables and $$ escapes for a later expansion.
        """
        if variables is None:
            variables = self.variables

        return exp.resolvestr(self, variables, (), escape)

    def expandstr(self, s, loc=None, variables=None, escape=False):
        return self.evaluate(self.parsemacro(s, loc), variables, escape)

    def value(self, name, variables=None):
        """
        The expanded value of a variable.
        """
        if variables is None:
            variables = self.variables

        fd = StringIO()
        resolvevariable(self, variables, name, fd, ())
        return fd.getvalue()

    def expand(self):
        """
        Expand computed variable names, every variable value and every rule.
        Variable values are kept raw in the table, their expansions go to
        self.values. Rules are rewritten in place.

        Expanding twice does nothing more.

        @returns (variables, rules)
        """
        if self.expanded:
            return self.variables, self.rules

        def vname(v):
            if '$' not in v.name:
                return v.name
            return self.expandstr(v.name, v.loc).strip()

        self.variables.rekey(vname)

        for v in self.variables:
            self.values[v.name] = self.value(v.name)

        for r in self.rules:
            r.target = self.expandstr(r.target, r.loc).strip()
            r.deps = self.expandstr(r.deps, r.loc).strip()
            r.recipes = [self.expandstr(c, r.loc, escape=True) for c in r.recipes]

        self.expanded = True
        return self.variables, self.rules

def scope(variables, automatic):
    """
    Layer the given {name: value} automatic variables over a variable table.
    """
    v = Variables(parent=variables)
    for name, value in automatic.items():
        v.set(name, value, None, Variable.FLAVOR_SIMPLE)
    return v
