#!/usr/bin/env python3
"""
CSS to PROGMEM converter for AVR/ESP web servers.
Minifies a stylesheet and writes it out as a C string constant so the
firmware can serve it straight from flash.

Usage: css2cpp.py [input_css] [output_cpp]
"""

import contextlib
import os
import re
import sys
from dataclasses import dataclass

import rcssmin

TOOL_NAME = 'css2cpp'
DEFAULT_INPUT = 'style.css'
OUTPUT_SUFFIX = '_css'
OUTPUT_EXTENSION = '.cpp'

# ASCII only, so the generated symbol stays a valid C identifier
_NON_WORD = re.compile(r'[^A-Za-z0-9_]+')
_CSS_EXTENSION = re.compile(r'\.css\Z')


class Css2CppError(Exception):
    """Base class for conversion failures."""


class ReadError(Css2CppError):
    """The source stylesheet could not be read."""


class MinifyError(Css2CppError):
    """The minifier rejected the stylesheet."""


class WriteError(Css2CppError):
    """The generated file could not be written."""


@dataclass(frozen=True)
class Config:
    source_path: str
    destination_path: str


def output_filename(input_filename):
    """Derive the .cpp path for a stylesheet: style.css -> style_css.cpp."""
    return _CSS_EXTENSION.sub('', input_filename) + OUTPUT_SUFFIX + OUTPUT_EXTENSION


def short_name(input_filename):
    """Symbol fragment for the generated constant.

    Only the first run of non-word characters is collapsed, so
    ``my-style.file.css`` becomes ``my_style.file.css``. Generated symbol
    names elsewhere in the firmware depend on this, keep it.
    """
    base = os.path.basename(input_filename)
    return _NON_WORD.sub('_', base, count=1).lower()


def parse_args(argv):
    """Build a Config from positional arguments (program name excluded).

    Anything past the second argument is ignored.
    """
    source = argv[0] if len(argv) > 0 and argv[0] else DEFAULT_INPUT
    destination = argv[1] if len(argv) > 1 and argv[1] else output_filename(source)
    return Config(source_path=source, destination_path=destination)


def read_source(path):
    """Read the whole stylesheet.

    Bytes that aren't UTF-8 are carried through as surrogates and come
    back out unchanged in write_output().
    """
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise ReadError(f"cannot read {path}: {e.strerror or e}") from e

    return data.decode('utf-8-sig', errors='surrogateescape')


def minify(css, minifier=rcssmin.cssmin):
    """Run the minifier, wrapping whatever it raises in MinifyError."""
    try:
        return minifier(css)
    except Exception as e:
        raise MinifyError(f"minifier failed: {e}") from e


def escape_string(value):
    """Escape double quotes for a C string literal.

    Anything that isn't a str comes back as an empty string.
    """
    if not isinstance(value, str):
        return ''
    return value.replace('"', '\\"')


def render(input_filename, name, css):
    """Generated C++ source for one stylesheet."""
    output = f"// This file was generated by {TOOL_NAME} from {input_filename}\n"
    output += '#include <avr/pgmspace.h>\n'
    output += '\n'
    output += f'const PROGMEM char pm_{name}[] = "{escape_string(css)}";\n'
    return output


def write_output(path, text):
    """Write the generated source, replacing any existing file.

    A failed write removes whatever was left of the file.
    """
    try:
        f = open(path, 'w', encoding='utf-8', errors='surrogateescape', newline='\n')
    except OSError as e:
        raise WriteError(f"cannot write {path}: {e.strerror or e}") from e

    try:
        with f:
            f.write(text)
    except OSError as e:
        with contextlib.suppress(OSError):
            os.remove(path)
        raise WriteError(f"cannot write {path}: {e.strerror or e}") from e


def convert(config, minifier=rcssmin.cssmin):
    """Read, minify, render and write one stylesheet. Returns the generated text."""
    original = read_source(config.source_path)
    minified = minify(original, minifier)
    output = render(config.source_path, short_name(config.source_path), minified)
    write_output(config.destination_path, output)
    return output


def report_size(config):
    """Print the stylesheet size next to the generated file size."""
    css_size = os.path.getsize(config.source_path)
    cpp_size = os.path.getsize(config.destination_path)
    print(f"  {os.path.basename(config.source_path)}: {css_size} bytes -> "
          f"{os.path.basename(config.destination_path)}: {cpp_size} bytes")


def main(argv=None, minifier=rcssmin.cssmin):
    config = parse_args(sys.argv[1:] if argv is None else argv)

    print(f"Input file: {config.source_path}")
    print(f"Output file: {config.destination_path}")

    try:
        convert(config, minifier)
    except (ReadError, MinifyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except WriteError as e:
        # reported only, exit status stays 0
        print(f"Error: {e}", file=sys.stderr)
        return 0

    report_size(config)
    print("Done.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
