def quote(val):
    return "'" + str(val) + "'" if val is not None else "None"


class ValueObjectMixin:
    """
    Equality, hashing and a readable representation for simple value objects.
    Two value objects are equal when they are of the same class and their attribute
    dictionaries are equal.
    """

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.__dict__ == other.__dict__

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash((self.__class__, tuple(sorted(self.__dict__.items()))))

    def __repr__(self):
        """
        outputs the class name and the object dictionary in key sorted order
        """
        return self.__class__.__name__ + self._sorted_items_string()

    def _sorted_items_string(self):
        return "{" + ", ".join([("'" + str(key)) + "'" + ": " + (quote(val))
                                for key, val in sorted(self.__dict__.items())]) + "}"
