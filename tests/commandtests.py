import io, os, shutil, tempfile, unittest
from contextlib import redirect_stderr, redirect_stdout

from makelite import command

class CommandTest(unittest.TestCase):
    def setUp(self):
        self.workdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.workdir)

    def write(self, name, data):
        with open(os.path.join(self.workdir, name), 'w') as fh:
            fh.write(data)

    def exists(self, name):
        return os.path.exists(os.path.join(self.workdir, name))

    def run_main(self, argv):
        out = io.StringIO()
        err = io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            status = command.main(argv)
        return status, out.getvalue(), err.getvalue()

    def test_default_goal(self):
        self.write('Makefile', "all: a\na:\n\t@touch a\nb:\n\t@touch b\n")
        status, out, err = self.run_main(['-C', self.workdir])
        self.assertEqual(status, 0)
        self.assertTrue(self.exists('a'))
        self.assertFalse(self.exists('b'))

    def test_goals_and_file(self):
        self.write('build.mk', "a:\n\t@touch a\nb:\n\t@touch b\n")
        status, out, err = self.run_main(['-f', os.path.join(self.workdir, 'build.mk'), 'b'])
        self.assertEqual(status, 0)
        self.assertTrue(self.exists('b'))
        self.assertFalse(self.exists('a'))

    def test_just_print(self):
        self.write('Makefile', "a:\n\t@touch $@\n")
        status, out, err = self.run_main(['-C', self.workdir, '-n'])
        self.assertEqual(status, 0)
        self.assertEqual(out, "touch a\n")
        self.assertFalse(self.exists('a'))

    def test_no_rule(self):
        self.write('Makefile', "all: missing\n")
        status, out, err = self.run_main(['-C', self.workdir])
        self.assertEqual(status, 2)
        self.assertEqual(err, "makelite: *** no rule to make target 'missing', needed by 'all'\n")

    def test_syntax_error(self):
        self.write('Makefile', "all\n")
        status, out, err = self.run_main(['-C', self.workdir])
        self.assertEqual(status, 2)
        self.assertTrue(err.endswith("Makefile:1: missing separator\n"))

    def test_recipe_failure(self):
        self.write('Makefile', "all:\n\t@exit 3\n")
        status, out, err = self.run_main(['-C', self.workdir])
        self.assertEqual(status, 2)
        self.assertTrue('exit 3' in err)

    def test_missing_makefile(self):
        status, out, err = self.run_main(['-C', self.workdir])
        self.assertEqual(status, 2)
        self.assertTrue(err.startswith('makelite: *** '))

if __name__ == '__main__':
    unittest.main()
