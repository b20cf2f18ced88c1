"""
Exceptions raised while reading and running makefiles.
"""


class MakeError(Exception):
    def __init__(self, message, loc=None):
        Exception.__init__(self, message)
        self.msg = message
        self.loc = loc

    def __str__(self):
        locstr = ''
        if self.loc is not None:
            locstr = "%s: " % (self.loc,)

        return "%s%s" % (locstr, self.msg)


class SyntaxError(MakeError):
    pass


class CycleError(MakeError):
    """
    Raised when a variable needs its own value to be expanded, directly or through
    other variables.
    """
    pass


class NoRuleError(MakeError):
    """
    Raised when a target is needed but there is no rule to make it and it doesn't exist.
    This is separately catchable so that implicit rule search can try things
    without having to commit.
    """
    pass


class RecipeExecutionError(MakeError):
    def __init__(self, message, loc=None, status=None):
        MakeError.__init__(self, message, loc)
        self.status = status
