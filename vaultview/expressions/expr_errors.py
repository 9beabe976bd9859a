from vaultview.errors import PredicateFault


class ExpressionSyntaxError(PredicateFault):
    """The expression text could not be parsed."""

    def __init__(self, message: str, pos: int = -1):
        self.message = message
        self.pos = pos
        super().__init__(f"{message} (at offset {pos})" if pos >= 0 else message)


class ExpressionRuntimeError(PredicateFault):
    """
    The expression failed while running, e.g. reading a property of null or calling
    something that isn't a function.
    """

    pass
