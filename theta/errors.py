class ThetaError(Exception):
    """ Base class for all theta errors"""
    pass

class ThetaSyntaxError(ThetaError):
    """ Raised when source text or a binder form is malformed"""

class ThetaNameError(ThetaError):
    """ Raised when a required macro name is not published by its module"""

class ThetaExpansionError(ThetaError):
    """ Base class for errors raised while expanding a form"""

class ThetaMalformedBindings(ThetaExpansionError, ValueError):
    """ Raised when a binding list is not a list of paired elements"""

class ThetaInvalidBindTarget(ThetaExpansionError, TypeError):
    """ Raised when a bind target is neither a symbol nor a destructuring pattern"""

class ThetaDottedTargetError(ThetaExpansionError, ValueError):
    """ Raised when a bind target contains a dotted name"""

class ThetaDestructureError(ThetaExpansionError, ValueError):
    """ Raised when destructuring into a mapping or attribute target"""

class ThetaQuotationUnderflow(ThetaExpansionError):
    """ Raised when an unquote appears outside of any quasiquote"""
