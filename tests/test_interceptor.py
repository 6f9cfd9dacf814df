import sys
import threading

import pytest

import classloader
from classloader import (
    ClassLoaderError,
    ErrorCode,
    LoadDeadlockError,
    MethodNotFoundError,
    Resolver,
    TypeNamespace,
    UnitLoadError,
    install,
)

PRESENT = """
class Present:
    def __init__(self, name="present"):
        self.name = name

    @classmethod
    def new(cls, *args, **kwargs):
        return cls(*args, **kwargs)

    @classmethod
    def describe(cls):
        return f"I am {cls.__name__}"

    @staticmethod
    def add(a, b, scale=1):
        return (a + b) * scale

    def greet(self, greeting):
        return f"{greeting}, {self.name}"

    @classmethod
    def explode(cls):
        raise ValueError("exploded on purpose")

    limit = 3
"""

MINIMAL_CLASS = """
class {name}:
    @classmethod
    def new(cls):
        return cls()
"""

RENDEZVOUS = """
import threading

# Both loads wait here once, so each holds its own type before calling the other
BARRIER = threading.Barrier(2, timeout=10)
ARRIVED = set()


def meet(name):
    if name not in ARRIVED:
        ARRIVED.add(name)
        BARRIER.wait()
"""

CALLS_OTHER_TYPE = """
import _rendezvous
from classloader import classes

_rendezvous.meet("{name}")
VALUE = classes.{other}.new()


class {name}:
    @classmethod
    def new(cls):
        return cls()
"""


class CountingResolver(Resolver):
    def __init__(self):
        super().__init__()
        self.resolved = []

    def resolve_type(self, type_name, method_name):
        self.resolved.append((type_name, method_name))
        return super().resolve_type(type_name, method_name)


@pytest.fixture
def present(write_unit):
    write_unit("Present", PRESENT)


@pytest.fixture
def resolver():
    return CountingResolver()


@pytest.fixture
def counted_classes(resolver):
    return TypeNamespace(resolver=resolver)


class TestScenarios:
    def test_missing_type_cannot_be_loaded(self, classes, unit_dir):
        with pytest.raises(UnitLoadError) as exc:
            classes.MissingType.new()

        assert exc.value.code is ErrorCode.UNIT_NOT_LOADABLE
        assert "CLASSLOADER-00001: module cannot be loaded" in str(exc.value)
        assert "ModuleNotFoundError: No module named 'MissingType'" in str(exc.value)

    def test_present_type_returns_instance_then_missing_method(
        self, classes, present
    ):
        obj = classes.Present.new()

        assert type(obj) is sys.modules["Present"].Present

        with pytest.raises(MethodNotFoundError) as exc:
            classes.Present.xxx()

        assert exc.value.code is ErrorCode.METHOD_NOT_FOUND
        assert "CLASSLOADER-00002: method does not exist" in str(exc.value)
        assert "Error:" not in str(exc.value)

    def test_failure_on_one_type_does_not_affect_another(self, classes, write_unit):
        write_unit("TypeA", MINIMAL_CLASS.format(name="TypeA"))
        write_unit("TypeB", MINIMAL_CLASS.format(name="TypeB"))

        with pytest.raises(MethodNotFoundError) as exc_a:
            classes.TypeA.xxx()
        with pytest.raises(MethodNotFoundError) as exc_b:
            classes.TypeB.xxx()

        assert exc_a.value.type_name == "TypeA"
        assert exc_b.value.type_name == "TypeB"

    def test_load_failure_does_not_affect_another_type(self, classes, present):
        with pytest.raises(UnitLoadError):
            classes.MissingType.new()

        assert classes.Present.describe() == "I am Present"


class TestForwarding:
    def test_result_matches_a_call_after_explicit_import(self, classes, present):
        result = classes.Present.describe()

        import Present

        assert result == Present.Present.describe()

    def test_arguments_are_forwarded_in_order(self, classes, present):
        assert classes.Present.add(1, 2) == 3
        assert classes.Present.add(2, 3, scale=4) == 20

    def test_keyword_arguments_are_forwarded(self, classes, present):
        obj = classes.Present.new(name="custom")

        assert obj.name == "custom"

    def test_instance_method_through_the_type(self, classes, present):
        obj = classes.Present.new(name="world")

        assert classes.Present.greet(obj, "hello") == "hello, world"

    def test_exceptions_from_the_method_are_not_wrapped(self, classes, present):
        with pytest.raises(ValueError, match="exploded on purpose") as exc:
            classes.Present.explode()

        assert not isinstance(exc.value, ClassLoaderError)

    def test_missing_method_on_an_instance_is_a_plain_attribute_error(
        self, classes, present
    ):
        obj = classes.Present.new()

        with pytest.raises(AttributeError) as exc:
            obj.xxx()

        assert not isinstance(exc.value, ClassLoaderError)

    def test_non_callable_attribute_is_not_a_method(self, classes, present):
        with pytest.raises(MethodNotFoundError):
            classes.Present.limit()


class TestSteadyState:
    def test_resolved_method_is_bound_on_the_type_namespace(self, classes, present):
        classes.Present.describe()

        import Present

        assert vars(classes.Present)["describe"] == Present.Present.describe

    def test_second_call_does_not_reach_the_resolver(
        self, counted_classes, resolver, present
    ):
        counted_classes.Present.describe()
        counted_classes.Present.describe()
        counted_classes.Present.describe()

        assert resolver.resolved == [("Present", "describe")]

    def test_other_methods_do_not_reach_the_resolver_after_load(
        self, counted_classes, resolver, present
    ):
        counted_classes.Present.new()
        counted_classes.Present.describe()
        counted_classes.Present.add(1, 2)

        assert resolver.resolved == [("Present", "new")]

    def test_all_methods_are_bound_on_first_load(self, classes, present):
        classes.Present.new()

        import Present

        bound = vars(classes.Present)
        assert bound["describe"] == Present.Present.describe
        assert bound["add"] is Present.Present.add
        assert bound["greet"] is Present.Present.greet
        assert "limit" not in bound
        assert "__init__" not in bound

    def test_missing_method_after_load_still_raises(
        self, counted_classes, resolver, present
    ):
        counted_classes.Present.new()

        with pytest.raises(MethodNotFoundError):
            counted_classes.Present.xxx()

        assert resolver.resolved == [("Present", "new"), ("Present", "xxx")]

    def test_module_is_executed_once_for_several_methods(
        self, classes, present, load_journal
    ):
        classes.Present.new()
        classes.Present.describe()
        classes.Present.add(1, 1)

        assert load_journal == ["Present"]

    def test_type_loaded_explicitly_is_not_loaded_again(
        self, classes, present, load_journal
    ):
        import Present  # noqa: F401

        assert classes.Present.describe() == "I am Present"
        assert load_journal == ["Present"]

    def test_failed_call_does_not_bind(self, classes, present):
        with pytest.raises(MethodNotFoundError):
            classes.Present.xxx()

        assert isinstance(vars(classes.Present)["xxx"], TypeNamespace)

    def test_failing_method_stays_bound(self, counted_classes, resolver, present):
        for _ in range(2):
            with pytest.raises(ValueError):
                counted_classes.Present.explode()

        assert resolver.resolved == [("Present", "explode")]


class TestTypeNames:
    def test_dotted_type_name(self, classes, write_unit, load_journal):
        write_unit(
            "geometry.Shape",
            """
            class Shape:
                sides = 0
            """,
        )
        write_unit(
            "geometry.Circle",
            """
            from geometry.Shape import Shape


            class Circle(Shape):
                def __init__(self, radius):
                    self.radius = radius

                @classmethod
                def from_radius(cls, radius):
                    return cls(radius)
            """,
        )

        circle = classes.geometry.Circle.from_radius(2.0)

        assert type(circle).__name__ == "Circle"
        assert type(circle).__module__ == "geometry.Circle"
        assert isinstance(circle, sys.modules["geometry.Shape"].Shape)
        assert circle.radius == 2.0
        # The base class is imported by the module itself
        assert load_journal == ["geometry.Circle", "geometry.Shape"]

    def test_module_without_matching_class(self, classes, write_unit):
        write_unit(
            "Mismatch",
            """
            class Other:
                @classmethod
                def new(cls):
                    return cls()
            """,
        )

        with pytest.raises(MethodNotFoundError) as exc:
            classes.Mismatch.new()

        assert exc.value.type_name == "Mismatch"

    def test_metaclass_getattr_is_honored(self, classes, write_unit):
        write_unit(
            "Dynamic",
            """
            class DynamicMeta(type):
                def __getattr__(cls, name):
                    if name.startswith("get_"):
                        return lambda: name[4:]
                    raise AttributeError(name)


            class Dynamic(metaclass=DynamicMeta):
                pass
            """,
        )

        assert classes.Dynamic.get_answer() == "answer"

    def test_call_without_type_is_rejected(self, classes, present, load_journal):
        with pytest.raises(TypeError, match="is not a method of a type"):
            classes.Present()

        assert load_journal == []

    def test_repr(self, classes):
        assert repr(classes) == "<TypeNamespace (root)>"
        assert repr(classes.geometry.Circle) == "<TypeNamespace 'geometry.Circle'>"

    def test_namespaces_are_cached(self, classes):
        assert classes.geometry is classes.geometry
        assert classes.geometry.Circle is classes.geometry.Circle


class TestReservedNames:
    @pytest.mark.parametrize("name", ["DESTROY", "AUTOLOAD", "X"])
    def test_uppercase_method_does_not_load(
        self, classes, present, load_journal, name
    ):
        with pytest.raises(AttributeError, match=name):
            getattr(classes.Present, name)()

        assert load_journal == []

    @pytest.mark.parametrize("name", ["__wrapped__", "__len__", "__deepcopy__"])
    def test_dunder_attributes_are_missing(self, classes, name):
        assert not hasattr(classes.Present, name)
        assert name not in vars(classes.Present)

    def test_mixed_case_method_is_not_reserved(self, classes, write_unit):
        write_unit(
            "Upper",
            """
            class Upper:
                @classmethod
                def GET_value(cls):
                    return 1
            """,
        )

        assert classes.Upper.GET_value() == 1


class TestDiagnostics:
    def test_innermost_frame_is_the_call_site(self, classes, unit_dir):
        with pytest.raises(UnitLoadError) as exc:
            classes.MissingType.new()

        frame = exc.value.diagnostic.frames[-1]
        assert frame.name == "test_innermost_frame_is_the_call_site"
        assert frame.filename == "test_interceptor.py"

        stack = str(exc.value).split("Stack:\n", 1)[1]
        assert stack.rstrip("\n").endswith(
            f"test_innermost_frame_is_the_call_site() "
            f"[test_interceptor.py:{frame.lineno}] <== ERROR"
        )

    def test_underlying_error_is_chained(self, classes, write_unit):
        write_unit("Exploding", "raise RuntimeError('boom')\n")

        with pytest.raises(UnitLoadError) as exc:
            classes.Exploding.new()

        assert isinstance(exc.value.__cause__, RuntimeError)
        assert exc.value.diagnostic.error == "RuntimeError: boom"
        assert "Error:\n    RuntimeError: boom\n" in str(exc.value)

    def test_syntax_error_location_is_stripped(self, classes, write_unit):
        write_unit("Broken", "def broken(:\n    pass\n")

        with pytest.raises(UnitLoadError) as exc:
            classes.Broken.new()

        error = exc.value.diagnostic.error
        assert error.startswith("SyntaxError: ")
        assert "line" not in error
        assert isinstance(exc.value.__cause__, SyntaxError)

    def test_unmet_dependency(self, classes, write_unit):
        write_unit(
            "Dependent",
            """
            import does_not_exist_anywhere


            class Dependent:
                pass
            """,
        )

        with pytest.raises(UnitLoadError) as exc:
            classes.Dependent.new()

        assert exc.value.diagnostic.error == (
            "ModuleNotFoundError: No module named 'does_not_exist_anywhere'"
        )


class TestConcurrency:
    @pytest.mark.timeout(30)
    def test_concurrent_first_calls_load_once(self, classes, write_unit, load_journal):
        write_unit(
            "Slow",
            """
            import time

            time.sleep(0.2)


            class Slow:
                @classmethod
                def new(cls):
                    return cls()
            """,
        )

        barrier = threading.Barrier(8)
        results = []
        errors = []

        def first_touch():
            barrier.wait()
            try:
                results.append(classes.Slow.new())
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=first_touch) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(results) == 8
        assert all(type(result).__name__ == "Slow" for result in results)
        assert load_journal == ["Slow"]

    @pytest.mark.timeout(30)
    def test_loads_calling_each_other_do_not_deadlock(self, write_unit):
        write_unit("_rendezvous", RENDEZVOUS, record_load=False)
        write_unit("CycA", CALLS_OTHER_TYPE.format(name="CycA", other="CycB"))
        write_unit("CycB", CALLS_OTHER_TYPE.format(name="CycB", other="CycA"))

        outcomes = {}

        def first_touch(type_name):
            try:
                getattr(classloader.classes, type_name).new()
            except ClassLoaderError as exc:
                outcomes[type_name] = exc

        threads = [
            threading.Thread(target=first_touch, args=(type_name,))
            for type_name in ("CycA", "CycB")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=20)

        assert not any(thread.is_alive() for thread in threads)
        assert set(outcomes) == {"CycA", "CycB"}
        assert all(isinstance(exc, UnitLoadError) for exc in outcomes.values())

        def causes(exc):
            while exc is not None:
                yield exc
                exc = exc.__cause__

        # One of the threads was refused the lock held by the other
        assert any(
            isinstance(cause, LoadDeadlockError)
            for exc in outcomes.values()
            for cause in causes(exc)
        )


class TestInstall:
    def test_root_is_installed_on_import(self):
        assert isinstance(classloader.classes, TypeNamespace)
        assert install() is classloader.classes

    def test_root_cannot_be_reinstalled_with_another_resolver(self):
        with pytest.raises(RuntimeError, match="already installed"):
            install(Resolver())

    def test_root_namespace_resolves_calls(self, present):
        obj = classloader.classes.Present.new()

        assert type(obj) is sys.modules["Present"].Present
