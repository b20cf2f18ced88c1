"""
Makefile functions.

Each function is a pure transformation of already-expanded argument strings
into a result string. The expander decides which words name functions by
looking them up in a registry such as `functionmap`; callers may supply
their own registry.
"""
from makelite.basic import Pattern


class Function(object):
    """
    A text function. This class is always subclassed with the following
    methods and attributes:

    name = the name used in makefiles
    minargs = minimum # of arguments
    maxargs = maximum # of arguments (0 means unlimited). Commas in the last
              argument are literal text.

    def resolve(self, args)
        Calls the function with a list of argument strings, returns a string
    """

    def __repr__(self):
        return "<Function %s>" % (self.name,)

class SubstFunction(Function):
    name = 'subst'
    minargs = 3
    maxargs = 3

    def resolve(self, args):
        s, r, d = args
        if s == '':
            return d
        return d.replace(s, r)

class PatSubstFunction(Function):
    name = 'patsubst'
    minargs = 3
    maxargs = 3

    def resolve(self, args):
        s, r, d = args
        p = Pattern(s)
        return ' '.join([p.subst(r, word) for word in d.split()])

class StripFunction(Function):
    name = 'strip'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        return ' '.join(args[0].split())

class FindstringFunction(Function):
    name = 'findstring'
    minargs = 2
    maxargs = 2

    def resolve(self, args):
        s, r = args
        if s in r:
            return s
        return ''

class FilterFunction(Function):
    name = 'filter'
    minargs = 2
    maxargs = 2

    def resolve(self, args):
        plist = [Pattern(p) for p in args[0].split()]
        return ' '.join([w for w in args[1].split()
                         if any(p.match(w) is not None for p in plist)])

class FilteroutFunction(Function):
    name = 'filter-out'
    minargs = 2
    maxargs = 2

    def resolve(self, args):
        plist = [Pattern(p) for p in args[0].split()]
        return ' '.join([w for w in args[1].split()
                         if not any(p.match(w) is not None for p in plist)])

class SortFunction(Function):
    name = 'sort'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        return ' '.join(sorted(set(args[0].split())))

class WordsFunction(Function):
    name = 'words'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        return str(len(args[0].split()))

class FirstWordFunction(Function):
    name = 'firstword'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        l = args[0].split()
        if len(l):
            return l[0]
        return ''

class LastWordFunction(Function):
    name = 'lastword'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        l = args[0].split()
        if len(l):
            return l[-1]
        return ''

def pathsplit(path, default='./'):
    """
    Splits a path into dirpart, filepart on the last slash. If there is no slash, dirpart
    is ./
    """
    dir, slash, file = path.rpartition('/')
    if slash == '':
        return default, file

    return dir + slash, file

class DirFunction(Function):
    name = 'dir'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        return ' '.join([pathsplit(path)[0] for path in args[0].split()])

class NotDirFunction(Function):
    name = 'notdir'
    minargs = 1
    maxargs = 1

    def resolve(self, args):
        return ' '.join([pathsplit(path)[1] for path in args[0].split()])

class SuffixFunction(Function):
    name = 'suffix'
    minargs = 1
    maxargs = 1

    @staticmethod
    def suffixes(words):
        for w in words:
            dir, file = pathsplit(w)
            base, dot, suffix = file.rpartition('.')
            if base != '':
                yield dot + suffix

    def resolve(self, args):
        return ' '.join(self.suffixes(args[0].split()))

class BasenameFunction(Function):
    name = 'basename'
    minargs = 1
    maxargs = 1

    @staticmethod
    def basenames(words):
        for w in words:
            dir = ''
            base, slash, file = w.rpartition('/')
            if slash != '':
                dir = base + slash

            base, dot, suffix = file.rpartition('.')
            if dot == '':
                base = suffix

            yield dir + base

    def resolve(self, args):
        return ' '.join(self.basenames(args[0].split()))

class AddSuffixFunction(Function):
    name = 'addsuffix'
    minargs = 2
    maxargs = 2

    def resolve(self, args):
        suffix = args[0].strip()
        return ' '.join([w + suffix for w in args[1].split()])

class AddPrefixFunction(Function):
    name = 'addprefix'
    minargs = 2
    maxargs = 2

    def resolve(self, args):
        prefix = args[0].strip()
        return ' '.join([prefix + w for w in args[1].split()])

functionmap = dict((f.name, f()) for f in (
    SubstFunction,
    PatSubstFunction,
    StripFunction,
    FindstringFunction,
    FilterFunction,
    FilteroutFunction,
    SortFunction,
    WordsFunction,
    FirstWordFunction,
    LastWordFunction,
    DirFunction,
    NotDirFunction,
    SuffixFunction,
    BasenameFunction,
    AddSuffixFunction,
    AddPrefixFunction,
))
