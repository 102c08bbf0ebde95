# ExpressFlow quote workflow
__version__ = "1.2.0"
