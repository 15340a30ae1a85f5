import pytest
from pydantic import TypeAdapter, ValidationError

from common.schema import OneToOneFiftyString, StrippedString


class TestStringTypes:
    def test_stripped_string(self) -> None:
        assert TypeAdapter(StrippedString).validate_python("  Summit  ") == "Summit"

    @pytest.mark.parametrize("value", ["", "   ", "x" * 151])
    def test_one_to_one_fifty_rejects(self, value: str) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(OneToOneFiftyString).validate_python(value)
