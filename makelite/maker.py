"""
Deciding what to rebuild, and rebuilding it.

The Maker normalizes the expanded rule list into explicit rules (keyed by
target name) and pattern rules (in declaration order), resolves the
prerequisites of each goal through explicit and pattern rules, then walks
the resulting graph depth-first, running the recipes of every target which
is out of date.

Everything outside the process goes through collaborators: file info,
globbing, running commands, and a MakeLogger receiving build events.
"""
import logging, re

from makelite import errors
from makelite.basic import Pattern
from makelite.expander import scope
from makelite.process import FileInfo, Globber, ShellRunner, findmodifiers

_log = logging.getLogger('makelite.maker')

def withoutdups(it):
    r = set()
    l = []
    for i in it:
        if not i in r:
            r.add(i)
            l.append(i)
    return l

def mtimeislater(deptime, targettime):
    """
    Is the mtime of the dependency later than the target?
    """

    if deptime is None:
        return True
    if targettime is None:
        return False
    return deptime > targettime

def dirpart(p):
    d, s, f = p.rpartition('/')
    if d == '':
        return '.'

    return d

def filepart(p):
    d, s, f = p.rpartition('/')
    return f

def setautomatic(automatic, name, plist):
    automatic[name] = ' '.join(plist)
    automatic[name + 'D'] = ' '.join([dirpart(p) for p in plist])
    automatic[name + 'F'] = ' '.join([filepart(p) for p in plist])


class MakeLogger(object):
    """
    Receives build events from the Maker. Every event is ignored; subclass
    and override the ones you care about.
    """

    def override(self, target, loc, prevloc):
        """A recipe for target at loc replaces the recipe at prevloc."""

    def depscomputed(self, target, deps):
        """All prerequisites of a goal, in the order they will be considered."""

    def targetstatus(self, target, forced):
        """target is about to be remade. forced: a prerequisite was remade."""

    def uptodate(self, target):
        pass

    def nothingtodo(self, target):
        pass

    def rulesgenerated(self, count):
        pass

    def globnomatch(self, pattern, loc):
        pass

    def circular(self, target, dep):
        pass

    def ignorederror(self, target, cline, status):
        pass

class LoggingLogger(MakeLogger):
    """
    Writes build events to a logging.Logger.
    """

    def __init__(self, log=None):
        if log is None:
            log = _log
        self.log = log

    def override(self, target, loc, prevloc):
        self.log.warning("%s: overriding recipe for target '%s', previous recipe at %s", loc, target, prevloc)

    def depscomputed(self, target, deps):
        self.log.info("'%s' deps: %s", target, ' '.join(deps))

    def targetstatus(self, target, forced):
        if forced:
            self.log.info("remaking '%s' (forced)", target)
        else:
            self.log.info("remaking '%s'", target)

    def uptodate(self, target):
        self.log.info("target '%s' is up to date", target)

    def nothingtodo(self, target):
        self.log.info("nothing to be done for '%s'", target)

    def rulesgenerated(self, count):
        self.log.debug("%i rules generated", count)

    def globnomatch(self, pattern, loc):
        self.log.warning("%s: '%s' doesn't match any file", loc, pattern)

    def circular(self, target, dep):
        self.log.warning("circular %s <- %s dependency dropped", target, dep)

    def ignorederror(self, target, cline, status):
        self.log.warning("recipe for target '%s' failed with status %i (ignored): %s", target, status, cline)


class ExplicitRule(object):
    """
    Everything the makefile says about one concrete target. recipeloc is the
    location of the rule which supplied the recipes.
    """

    def __init__(self, target, prerequisites, recipes, loc):
        self.target = target
        self.prerequisites = prerequisites
        self.recipes = recipes
        self.loc = loc
        self.recipeloc = loc

    def __repr__(self):
        return "ExplicitRule<%s>(%r: %r)" % (self.loc, self.target, self.prerequisites)

class PatternRule(object):
    """
    An implicit rule: a target pattern with one %, prerequisite patterns and recipes.
    """

    def __init__(self, target, prerequisites, recipes, loc):
        self.target = target
        self.pattern = Pattern(target)
        self.prerequisites = prerequisites
        self.recipes = recipes
        self.loc = loc

    def prerequisitesforstem(self, stem):
        """
        Substitute a stem into the prerequisite patterns. When the target pattern has
        no slash, the directory part of the stem goes in front of each prerequisite.
        """
        dir = ''
        if not self.pattern.hasslash():
            d, slash, stem = stem.rpartition('/')
            dir = d + slash

        return [Pattern(p).resolve(dir, stem) for p in self.prerequisites]

    def __repr__(self):
        return "PatternRule<%s>(%r: %r)" % (self.loc, self.target, self.prerequisites)


MAKESTATE_NONE = 0
MAKESTATE_FINISHED = 1

class Target(object):
    """
    A target being considered in a recompile() call: the rule that makes it
    (None for a plain file), its prerequisites and recipes, and the stem when it
    is made by a pattern rule.
    """

    def __init__(self, target, prerequisites, recipes, rule, stem=None):
        self.target = target
        self.prerequisites = prerequisites
        self.recipes = recipes
        self.rule = rule
        self.stem = stem
        self.state = MAKESTATE_NONE

    @property
    def loc(self):
        if self.rule is None:
            return None
        if isinstance(self.rule, ExplicitRule):
            return self.rule.recipeloc
        return self.rule.loc

    def __repr__(self):
        return "Target(%r: %r)" % (self.target, self.prerequisites)


class Maker(object):
    """
    @param expander a makelite.expander.Expander holding the variables and rules.
    @param goals the targets recompile() makes when it isn't given any.
    @param fileinfo an object with exists(path) and mtime(path) methods.
    @param globber an object with an expand(pattern) method returning sorted paths.
    @param runner an object with a run(cline, silent, shell) method returning the exit status.
    @param logger a MakeLogger.
    """

    _globcheck = re.compile(r'[\[*?]')

    def __init__(self, expander, goals=(), fileinfo=None, globber=None, runner=None, logger=None):
        if fileinfo is None:
            fileinfo = FileInfo()
        if globber is None:
            globber = Globber()
        if runner is None:
            runner = ShellRunner()
        if logger is None:
            logger = MakeLogger()

        self.expander = expander
        self.goals = list(goals)
        self.fileinfo = fileinfo
        self.globber = globber
        self.runner = runner
        self.logger = logger

        self.explicit = {}
        self.patterns = []
        self.normalized = False

    def _expandwildcards(self, words, loc):
        for w in words:
            if not self._globcheck.search(w):
                yield w
                continue

            l = self.globber.expand(w)
            if not len(l):
                self.logger.globnomatch(w, loc)
                yield w
            else:
                for r in l:
                    yield r

    def _targetnames(self, target, loc):
        words = target.split()
        for w in words:
            if self._globcheck.search(w):
                return list(self._expandwildcards(words, loc))

        if target == '':
            return []
        return [target]

    def _addexplicit(self, target, deps, rule):
        prev = self.explicit.get(target)
        if prev is None:
            self.explicit[target] = ExplicitRule(target, list(deps), list(rule.recipes), rule.loc)
            return

        if len(rule.recipes):
            if len(prev.recipes):
                self.logger.override(target, rule.loc, prev.recipeloc)

            # the prerequisites of the rule with the recipe come first
            prev.prerequisites = withoutdups(deps + prev.prerequisites)
            prev.recipes = list(rule.recipes)
            prev.recipeloc = rule.loc
        else:
            prev.prerequisites = withoutdups(prev.prerequisites + deps)

    def _addpattern(self, target, deps, rule):
        for i, p in enumerate(self.patterns):
            if p.target != target or p.prerequisites != deps:
                continue

            if not len(rule.recipes):
                _log.info("%s: cancelling pattern rule at %s", rule.loc, p.loc)
                del self.patterns[i]
                return

            self.logger.override(target, rule.loc, p.loc)
            self.patterns[i] = PatternRule(target, deps, list(rule.recipes), rule.loc)
            return

        if not len(rule.recipes):
            _log.debug("%s: ignoring pattern rule '%s' without recipe", rule.loc, target)
            return

        self.patterns.append(PatternRule(target, deps, list(rule.recipes), rule.loc))

    def normalize(self):
        """
        Split the expanded rules into explicit and pattern rules, merging
        repeated targets and expanding glob patterns.
        """
        self.expander.expand()

        self.explicit = {}
        self.patterns = []

        for r in self.expander.rules:
            deps = withoutdups(self._expandwildcards(r.deps.split(), r.loc))
            for t in self._targetnames(r.target, r.loc):
                if Pattern(t).ispattern():
                    self._addpattern(t, deps, r)
                else:
                    self._addexplicit(t, deps, r)

        self.normalized = True
        self.logger.rulesgenerated(len(self.explicit) + len(self.patterns))

    @staticmethod
    def stem(pattern, target):
        """
        The text % stands for when target matches pattern, or None if it doesn't.

        A pattern without a slash is matched against the file part of the target
        and the directory part is kept at the front of the stem.
        """
        p = Pattern(pattern)
        if not p.ispattern():
            return None

        dir = ''
        word = target
        if not p.hasslash():
            d, slash, word = target.rpartition('/')
            dir = d + slash

        s = p.match(word)
        if not s:
            return None

        return dir + s

    def default_goal(self):
        if not self.normalized:
            self.normalize()

        for t in self.explicit:
            return t

        return None

    def _findimplicitrule(self, target, targetstack, rulestack):
        """
        Find the first pattern rule whose prerequisites exist or can be made.

        @returns (rule, stem, prerequisites) or None
        """
        _log.info("Searching for implicit rule to make '%s'", target)

        for r in self.patterns:
            if r in rulestack:
                _log.info(" %s: Avoiding implicit rule recursion", r.loc)
                continue

            stem = self.stem(r.target, target)
            if stem is None:
                continue

            deps = r.prerequisitesforstem(stem)
            depfailed = None
            for d in deps:
                if d in targetstack:
                    depfailed = d
                    break

                if d in self.explicit or self.fileinfo.exists(d):
                    continue

                try:
                    self._resolve(d, targetstack, rulestack + [r])
                except errors.NoRuleError:
                    depfailed = d
                    break

            if depfailed is not None:
                _log.info(" Rule at %s doesn't match: prerequisite '%s' could not be made.", r.loc, depfailed)
                continue

            _log.info("Found implicit rule at %s for target '%s'", r.loc, target)
            return r, stem, deps

        _log.info("Couldn't find implicit rule to remake '%s'", target)
        return None

    def _resolve(self, target, targetstack, rulestack):
        """
        Resolve the rule and the prerequisites of target, recursively.

        @param targetstack the targets currently being resolved.
        @param rulestack the pattern rules used by the current chain. A chain
               cannot use the same pattern rule twice.
        """
        t = self._targets.get(target)
        if t is not None:
            return t

        needed = targetstack
        targetstack = targetstack + [target]

        rule = self.explicit.get(target)
        if rule is not None and len(rule.recipes):
            t = Target(target, rule.prerequisites, rule.recipes, rule)
            rulestack = []
        else:
            found = self._findimplicitrule(target, targetstack, rulestack)
            if found is not None:
                prule, stem, deps = found
                if rule is not None:
                    deps = withoutdups(deps + rule.prerequisites)
                t = Target(target, deps, prule.recipes, prule, stem)
                rulestack = rulestack + [prule]
            elif rule is not None:
                t = Target(target, rule.prerequisites, [], rule)
                rulestack = []
            elif self.fileinfo.exists(target):
                t = Target(target, [], [], None)
            elif len(needed):
                raise errors.NoRuleError("no rule to make target '%s', needed by '%s'" % (target, needed[-1]))
            else:
                raise errors.NoRuleError("no rule to make target '%s'" % (target,))

        prerequisites = []
        for d in t.prerequisites:
            if d in targetstack:
                self.logger.circular(target, d)
                continue

            self._resolve(d, targetstack, rulestack)
            prerequisites.append(d)
        t.prerequisites = prerequisites

        self._targets[target] = t
        return t

    def _buildorder(self, t):
        """
        All targets t depends on, prerequisites first, ending with t itself.
        """
        order = []
        seen = set()

        def visit(t):
            if t.target in seen:
                return
            seen.add(t.target)
            for d in t.prerequisites:
                visit(self._targets[d])
            order.append(t)

        visit(t)
        return order

    def _runrecipes(self, t, outofdate):
        prerequisites = t.prerequisites

        automatic = {}
        setautomatic(automatic, '@', [t.target])
        setautomatic(automatic, '<', prerequisites[:1])
        setautomatic(automatic, '^', withoutdups(prerequisites))
        setautomatic(automatic, '+', prerequisites)
        setautomatic(automatic, '?', outofdate)
        setautomatic(automatic, '*', [t.stem or ''])
        variables = scope(self.expander.variables, automatic)

        for c in t.recipes:
            cline = self.expander.expandstr(c, t.loc, variables)
            cline, silent, ignoreErrors = findmodifiers(cline)
            if cline.strip() == '':
                continue

            status = self.runner.run(cline, silent=silent, shell=self.shell)
            if status == 0:
                continue

            if ignoreErrors:
                self.logger.ignorederror(t.target, cline, status)
                continue

            raise errors.RecipeExecutionError("recipe for target '%s' failed: command '%s' returned %i" % (t.target, cline, status),
                                              t.loc, status)

    def _update(self, t):
        """
        Decide whether t is out of date, and remake it if it is.
        """
        if t.rule is None:
            self.logger.nothingtodo(t.target)
            return

        if t.state == MAKESTATE_FINISHED:
            self.logger.uptodate(t.target)
            return

        t.state = MAKESTATE_FINISHED

        mtime = self.fileinfo.mtime(t.target)
        forced = False
        outofdate = []
        for d in t.prerequisites:
            if d in self._remade:
                forced = True
                outofdate.append(d)
            elif mtimeislater(self.fileinfo.mtime(d), mtime):
                outofdate.append(d)

        remake = mtime is None or len(outofdate) > 0

        if not len(t.recipes):
            if mtime is None or forced:
                self._remade.add(t.target)
            self.logger.nothingtodo(t.target)
            return

        if not remake:
            self.logger.uptodate(t.target)
            return

        self.logger.targetstatus(t.target, forced)
        self._runrecipes(t, outofdate)
        self._remade.add(t.target)

    def recompile(self, goals=None):
        """
        Make the goals: the given ones, else the ones given to the constructor,
        else the default goal.
        """
        if not self.normalized:
            self.normalize()

        if not goals:
            goals = self.goals
        if not goals:
            default = self.default_goal()
            if default is None:
                raise errors.MakeError("no targets")
            goals = [default]

        self.shell = self.expander.value('SHELL')
        self._targets = {}
        self._remade = set()

        for goal in goals:
            t = self._resolve(goal, [], [])
            order = self._buildorder(t)
            self.logger.depscomputed(goal, [d.target for d in order[:-1]])
            for d in order:
                self._update(d)
