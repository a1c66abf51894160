"""closuredeps — live dependency graph and load ordering for Closure-style modules."""

__version__ = "0.4.0"
