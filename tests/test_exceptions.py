import inspect

import exceptions
from exceptions import (
    BusinessRuleError,
    EmptyCartError,
    NotFoundError,
    OrderNotFoundError,
    PaymentExceedsBalanceError,
    PosError,
)


def test_every_domain_error_is_documented():
    errors = [cls for _, cls in inspect.getmembers(exceptions, inspect.isclass) if issubclass(cls, PosError)]

    assert len(errors) == 10
    for cls in errors:
        assert cls.__doc__, cls.__name__


def test_categories_map_to_builtins():
    assert isinstance(OrderNotFoundError(1), (NotFoundError, LookupError))
    assert isinstance(EmptyCartError(), (BusinessRuleError, ValueError))
    assert str(PaymentExceedsBalanceError(1, 25, 20)) == "Payment exceeds remaining balance"
