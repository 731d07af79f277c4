"""Provide insights about Python objects."""

import functools
import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Get the qualified name of the given object.

    Used to give a readable representation of the
    functions invoked by expressions.

    For functions or methods, this will return
    something like `module.class.method` or
    `module.function`. Partials are represented
    by the function they wrap.

    >>> class TestClass:
    ...   def method(self, arg):
    ...     pass
    >>> get_qualname(TestClass.method)
    'datawrangler.utils.inspect.TestClass.method'
    >>> get_qualname(functools.partial(get_qualname))
    'datawrangler.utils.inspect.get_qualname'
    """
    if isinstance(obj, functools.partial):
        return get_qualname(obj.func)

    module = inspect.getmodule(obj)
    module_name = module.__name__ if module is not None else "<unknown>"
    if inspect.ismethod(obj) or inspect.isfunction(obj):
        if getattr(obj, "__self__", None) is not None:
            class_name = obj.__self__.__class__.__name__
            return f"{module_name}.{class_name}.{obj.__name__}"
        return f"{module_name}.{obj.__qualname__}"
    elif inspect.isclass(obj):
        return f"{module_name}.{obj.__name__}"
    elif inspect.ismodule(obj):
        return obj.__name__
    return f"{module_name}.{getattr(obj, '__name__', obj.__class__.__name__)}"
