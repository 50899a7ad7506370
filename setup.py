"""
Build script for tagfilter with optional mypyc compilation.

Usage:
    # Pure Python build (default)
    python -m build

    # Compiled with mypyc
    TAGFILTER_USE_MYPYC=1 pip install .
"""

import os
import sys
from pathlib import Path

from setuptools import find_packages, setup

# Determine if we should use mypyc
USE_MYPYC = os.environ.get("TAGFILTER_USE_MYPYC", "0") == "1"

# Modules on the per-token hot path.
# Note: filter.py is excluded; it accepts arbitrary callables as hooks and
# mypyc's native classes don't play well with __slots__ plus Callable attributes.
MYPYC_MODULES = [
    "src/tagfilter/tokenizer.py",
    "src/tagfilter/entities.py",
    "src/tagfilter/rules.py",
]


def build_with_mypyc() -> list:
    """Build extension modules using mypyc."""
    try:
        from mypyc.build import mypycify
    except ImportError:
        print(
            "ERROR: mypyc is not installed. Install with: pip install mypy",
            file=sys.stderr,
        )
        print("Or install with mypyc support: pip install tagfilter[mypyc]", file=sys.stderr)
        sys.exit(1)

    for module_path in MYPYC_MODULES:
        if not Path(module_path).exists():
            print(f"ERROR: Module not found: {module_path}", file=sys.stderr)
            sys.exit(1)

    print(f"Compiling {len(MYPYC_MODULES)} modules with mypyc:")
    for module in MYPYC_MODULES:
        print(f"  - {module}")

    opt_level = os.environ.get("MYPYC_OPT_LEVEL", "3")
    debug_level = os.environ.get("MYPYC_DEBUG_LEVEL", "0")

    mypyc_options = {
        "opt_level": opt_level,
        "debug_level": debug_level,
        "separate": False,
        "multi_file": False,
    }

    return mypycify(MYPYC_MODULES, **mypyc_options)


if __name__ == "__main__":
    ext_modules = []

    if USE_MYPYC:
        ext_modules = build_with_mypyc()

    setup(
        name="tagfilter",
        version="1.0.0",
        description="A fine-grained HTML tag filter, XSS blocker and mailto obfuscator",
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[],
        extras_require={
            "mypyc": ["mypy"],
            "test": ["pytest"],
        },
        classifiers=[
            "Programming Language :: Python :: 3",
            "Topic :: Text Processing :: Markup :: HTML",
            "Topic :: Security",
        ],
        ext_modules=ext_modules,
    )
