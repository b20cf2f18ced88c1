"""
The makelite command line: read a makefile, expand it and make the goals.
"""
import argparse, logging, os, sys

from makelite import errors, parser
from makelite.expander import Expander
from makelite.maker import Maker, LoggingLogger
from makelite.process import FileInfo, Globber, ShellRunner

_loglevels = [logging.WARNING, logging.INFO, logging.DEBUG]

def makeargparser():
    op = argparse.ArgumentParser(prog='makelite',
                                 description='Make the given targets, or the first target of the makefile.')
    op.add_argument('goals', nargs='*', metavar='target',
                    help='targets to make')
    op.add_argument('-f', '--file', dest='makefile', metavar='FILE', default='Makefile',
                    help='read FILE as the makefile (default: Makefile)')
    op.add_argument('-C', '--directory', dest='directory', metavar='DIR', default=None,
                    help='change to DIR before reading the makefile')
    op.add_argument('-n', '--just-print', dest='justprint', action='store_true',
                    help='print the recipes instead of running them')
    op.add_argument('-v', '--verbose', dest='verbose', action='count', default=0,
                    help='log build decisions; repeat for debug output')
    return op

def loadmakefile(path, environ=None):
    """
    Read, parse and expand a makefile.

    @returns an Expander holding the expanded variables and rules
    """
    with open(path, 'r') as fh:
        source = fh.read()

    variables, rules = parser.parsestring(source, path)
    e = Expander(variables, rules, environ=environ)
    e.expand()
    return e

def main(argv=None):
    """
    @returns the exit status: 0 when every goal was made, 2 on errors
    """
    if argv is None:
        argv = sys.argv[1:]

    options = makeargparser().parse_args(argv)

    level = _loglevels[min(options.verbose, len(_loglevels) - 1)]
    logging.basicConfig(level=level, format='makelite: %(message)s')

    workdir = options.directory
    makefile = options.makefile
    if workdir is None:
        workdir = os.path.dirname(os.path.abspath(makefile))
    else:
        makefile = os.path.join(workdir, makefile)
    workdir = os.path.abspath(workdir)

    try:
        expander = loadmakefile(makefile, environ=os.environ.get)
        m = Maker(expander, options.goals,
                  fileinfo=FileInfo(workdir),
                  globber=Globber(workdir),
                  runner=ShellRunner(cwd=workdir, justprint=options.justprint),
                  logger=LoggingLogger())
        m.recompile()
    except IOError as e:
        print("makelite: *** %s" % (e,), file=sys.stderr)
        return 2
    except errors.MakeError as e:
        print("makelite: *** %s" % (e,), file=sys.stderr)
        return 2

    return 0
