"""Tests for the built-in expression functions."""

import pytest

from layoutel.el import ResolutionContext, evaluate_condition
from layoutel.expressions import (
    BUILTIN_FUNCTIONS,
    FunctionRegistry,
    default_functions,
    evaluate_expression,
    register_builtin_functions,
)


@pytest.fixture
def context():
    return ResolutionContext(
        attributes={
            "role": "admin",
            "tags": ["a", "b"],
            "blank": "",
            "none": [],
        },
        template_params={"mode": "edit"},
    )


class TestRegistration:
    """Tests for registering the built-ins."""

    def test_default_functions(self):
        registry = default_functions()
        assert registry.list_registered() == sorted(BUILTIN_FUNCTIONS)

    def test_register_into_existing_registry(self):
        registry = FunctionRegistry()
        assert register_builtin_functions(registry) is registry
        assert registry.is_registered("oneOf")

    def test_context_has_builtins(self, context):
        assert context.functions.is_registered("hasParam")


class TestEmpty:
    @pytest.mark.parametrize(
        "infix,expected",
        [
            ("empty($attribute{missing})", True),
            ("empty($attribute{blank})", True),
            ("empty($attribute{none})", True),
            ("empty($attribute{role})", False),
            ("empty($attribute{tags})", False),
            ("!empty($attribute{role})", True),
            ("empty()", True),
        ],
    )
    def test_empty(self, context, infix, expected):
        assert evaluate_condition(infix, context) is expected


class TestStringFunctions:
    @pytest.mark.parametrize(
        "infix,expected",
        [
            ("equals($attribute{role},admin)", True),
            ("equals($attribute{role},user)", False),
            ("equals('abc',abc)", True),
            ("equals(abc,a.c)", False),
            ("abc=a.c", True),
            ("contains($attribute{role},dm)", True),
            ("contains($attribute{tags},b)", True),
            ("contains($attribute{tags},c)", False),
            ("startsWith($attribute{role},ad)", True),
            ("startsWith($attribute{role},min)", False),
            ("endsWith($attribute{role},min)", True),
            ("endsWith($attribute{role},ad)", False),
        ],
    )
    def test_string_functions(self, context, infix, expected):
        assert evaluate_condition(infix, context) is expected

    def test_quoted_argument_is_not_resolved(self, context):
        assert evaluate_condition("equals('$attribute{role}',admin)", context) is False

    def test_string_form_is_the_boolean(self, context):
        assert evaluate_condition("equals(a,a)=true", context) is True


class TestOneOf:
    @pytest.mark.parametrize(
        "infix,expected",
        [
            ("oneOf($attribute{role},options=['user','admin'])", True),
            ("oneOf(guest,options=['user','admin'])", False),
            ("oneOf(admin,options='admin')", True),
            ("oneOf(admin,options={'x','admin'})", True),
            ("oneOf(admin)", False),
        ],
    )
    def test_one_of(self, context, infix, expected):
        assert evaluate_condition(infix, context) is expected

    def test_options_are_resolved(self, context):
        assert evaluate_condition("oneOf(admin,options=['$attribute{role}'])", context) is True


class TestHasParam:
    @pytest.mark.parametrize(
        "infix,expected",
        [
            ("hasParam(mode)", True),
            ("hasParam('mode')", True),
            ("hasParam(other)", False),
            ("hasParam()", False),
        ],
    )
    def test_has_param(self, context, infix, expected):
        assert evaluate_condition(infix, context) is expected

    def test_unbound_function_is_false(self):
        assert evaluate_expression("hasParam(mode)", default_functions()) is False
