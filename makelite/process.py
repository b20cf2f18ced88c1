"""
The default collaborators the build engine talks to the outside world through:
file information, globbing and running recipe lines.
Tests substitute their own objects with the same methods.
"""
import logging, os, sys, subprocess
from glob import glob

_log = logging.getLogger('makelite.process')

def findmodifiers(command):
    """
    Find any of @- prefixed on the command.
    @returns (command, isHidden, ignoreErrors)
    """

    realcommand = command.lstrip(' \t\n@-+')
    modset = set(command[:len(command) - len(realcommand)])
    return realcommand, '@' in modset, '-' in modset

def normaljoin(path, subpath):
    """
    Join a path and a subpath, unless the subpath is absolute.
    """
    return os.path.normpath(os.path.join(path, subpath)).replace('\\', '/')

class FileInfo(object):
    """
    Existence and modification times of files, relative to a working directory.
    """

    def __init__(self, workdir=None):
        if workdir is None:
            workdir = os.getcwd()
        self.workdir = workdir

    def mtime(self, path):
        try:
            s = os.stat(normaljoin(self.workdir, path))
            return s.st_mtime
        except OSError:
            return None

    def exists(self, path):
        return os.path.exists(normaljoin(self.workdir, path))

def globfiles(pattern, workdir=None):
    """
    Sorted list of the paths matching a glob pattern, relative to workdir
    when the pattern is relative.
    """
    if workdir is None or os.path.isabs(pattern):
        return sorted(glob(pattern))

    prefix = len(workdir.rstrip('/')) + 1
    return sorted(p[prefix:].replace('\\', '/') for p in glob(os.path.join(workdir, pattern)))

class Globber(object):
    def __init__(self, workdir=None):
        self.workdir = workdir

    def expand(self, pattern):
        return globfiles(pattern, self.workdir)

class ShellRunner(object):
    """
    Runs recipe lines through a shell, echoing them first unless they're silent.
    Output goes straight to our stdout and stderr.
    """

    def __init__(self, cwd=None, env=None, justprint=False):
        self.cwd = cwd
        self.env = env
        self.justprint = justprint

    def run(self, cline, silent=False, shell='/bin/sh'):
        """
        @returns the exit status of the command
        """
        if not silent or self.justprint:
            print(cline)
            sys.stdout.flush()

        if self.justprint:
            return 0

        argv = [shell, '-c', cline]
        _log.debug("running %r in %s", argv, self.cwd)
        try:
            return subprocess.call(argv, cwd=self.cwd, env=self.env)
        except OSError as e:
            print(e, file=sys.stderr)
            return 127
