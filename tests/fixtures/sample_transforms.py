"""Native transforms referenced by plans in the test suite."""


def add_flag(document):
    """Function transform: marks the document as transformed."""
    result = dict(document)
    result["transformed"] = True
    return result


class UppercaseName:
    """Class transform with an apply method."""

    def apply(self, document):
        result = dict(document)
        if isinstance(result.get("name"), str):
            result["name"] = result["name"].upper()
        return result


class WrapFactory:
    """Factory transform: create() returns the callable."""

    @staticmethod
    def create():
        return lambda document: {"wrapped": document}


NOT_A_TRANSFORM = 42
