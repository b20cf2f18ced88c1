import unittest

from makelite import expander
from makelite.functions import functionmap, pathsplit

def call(name, *args):
    return functionmap[name].resolve(list(args))

class TextFunctionTest(unittest.TestCase):
    def test_subst(self):
        self.assertEqual(call('subst', 'ee', 'EE', 'feet on the street'), 'fEEt on the strEEt')
        self.assertEqual(call('subst', '', 'x', 'abc'), 'abc')

    def test_patsubst(self):
        self.assertEqual(call('patsubst', '%.c', '%.o', 'a.c b.h  c.c'), 'a.o b.h c.o')

    def test_strip(self):
        self.assertEqual(call('strip', '  a   b \t c '), 'a b c')

    def test_findstring(self):
        self.assertEqual(call('findstring', 'a', 'a b c'), 'a')
        self.assertEqual(call('findstring', 'a', 'b c'), '')

    def test_filter(self):
        self.assertEqual(call('filter', '%.c %.s', 'foo.c bar.c baz.s ugh.h'), 'foo.c bar.c baz.s')
        self.assertEqual(call('filter-out', '%.c %.s', 'foo.c bar.c baz.s ugh.h'), 'ugh.h')

    def test_sort(self):
        self.assertEqual(call('sort', 'foo bar lose foo'), 'bar foo lose')

    def test_words(self):
        self.assertEqual(call('words', ' a b  c '), '3')
        self.assertEqual(call('firstword', 'a b c'), 'a')
        self.assertEqual(call('lastword', 'a b c'), 'c')
        self.assertEqual(call('firstword', ''), '')
        self.assertEqual(call('lastword', ''), '')

class FileNameFunctionTest(unittest.TestCase):
    def test_pathsplit(self):
        self.assertEqual(pathsplit('foo'), ('./', 'foo'))
        self.assertEqual(pathsplit('/a/b'), ('/a/', 'b'))
        self.assertEqual(pathsplit('a/'), ('a/', ''))

    def test_dir(self):
        self.assertEqual(call('dir', 'src/foo.c hacks'), 'src/ ./')
        self.assertEqual(call('dir', '/a/b'), '/a/')

    def test_notdir(self):
        self.assertEqual(call('notdir', 'src/foo.c hacks /foo/bar'), 'foo.c hacks bar')

    def test_suffix(self):
        self.assertEqual(call('suffix', 'src/foo.c src-1.0/bar.c hacks'), '.c .c')

    def test_basename(self):
        self.assertEqual(call('basename', 'src/foo.c src-1.0/bar hacks.x.y'), 'src/foo src-1.0/bar hacks.x')

    def test_addfix(self):
        self.assertEqual(call('addsuffix', '.c', 'foo bar'), 'foo.c bar.c')
        self.assertEqual(call('addprefix', 'src/', 'foo bar'), 'src/foo src/bar')

class FunctionRefTest(unittest.TestCase):
    def test_arguments(self):
        e = expander.parsemacro('$(subst a,b,c,d)')
        f = e[0][0]
        self.assertTrue(isinstance(f, expander.FunctionRef))
        self.assertEqual(len(f), 3)
        self.assertEqual(f[2].to_source(), 'c,d')

    def test_descend(self):
        e = expander.parsemacro('$(strip $(FOO) $(dir $(BAR)))')
        f = e[0][0]
        self.assertEqual(len(list(f.expansions())), 1)
        self.assertEqual(len(list(e.functions())), 1)
        self.assertEqual(len(list(e.functions(True))), 4)

    def test_too_few_arguments(self):
        e = expander.parsemacro('$(subst a,b)')
        self.assertEqual(e.resolvestr(None, None), '')

    def test_custom_registry(self):
        class Reverse(object):
            name = 'reverse'
            minargs = 1
            maxargs = 1

            def resolve(self, args):
                return ' '.join(reversed(args[0].split()))

        from makelite.parser import Variables
        e = expander.Expander(Variables.builtin(), [], functions={'reverse': Reverse()})
        self.assertEqual(e.expandstr('$(reverse a b c)'), 'c b a')
        self.assertEqual(e.expandstr('$(strip a)'), '')

if __name__ == '__main__':
    unittest.main()
