import argparse
import os
import sys

from .IniFile import IniFile
from .utils.exceptions import IniFileError
from .utils.log import setup_logging


GETTERS = {
    "str": IniFile.get_value,
    "int": IniFile.get_int_value,
    "double": IniFile.get_double_value,
    "bool": IniFile.get_bool_value,
}


def set_typed_value(ini, section, key, value, typ):
    """Convert the command line text to `typ` and store it with the matching setter."""
    if typ == "int":
        ini.set_int_value(section, key, IniFile.string_to_int(value))
    elif typ == "double":
        ini.set_double_value(section, key, IniFile.string_to_double(value))
    elif typ == "bool":
        ini.set_bool_value(section, key, IniFile.string_to_bool(value))
    else:
        ini.set_string_value(section, key, value)


def format_value(value):
    if isinstance(value, bool):
        return IniFile.bool_to_string(value)
    return str(value)


def build_parser():
    args = argparse.ArgumentParser(description="Read and edit INI configuration files")
    args.add_argument("filename", type=str, help="The INI file to operate on")
    args.add_argument("--log-level", type=str, help="Logging level", default="WARNING")
    commands = args.add_subparsers(dest="command", required=True)

    get_cmd = commands.add_parser("get", help="Print a value")
    get_cmd.add_argument("section", type=str)
    get_cmd.add_argument("key", type=str)
    get_cmd.add_argument("--type", choices=sorted(GETTERS), default="str", help="Type to read the value as")

    set_cmd = commands.add_parser("set", help="Change a value and save the file")
    set_cmd.add_argument("section", type=str)
    set_cmd.add_argument("key", type=str)
    set_cmd.add_argument("value", type=str)
    set_cmd.add_argument("--type", choices=sorted(GETTERS), default="str", help="Type to store the value as")

    commands.add_parser("dump", help="Print every section, key and value")
    return args


def main(argv=None):
    """
    Command line front end for IniFile.

    Example:
    ini-tool wsprrypi.ini get Common "TX Power" --type int
    ini-tool wsprrypi.ini set Control Transmit true --type bool
    ini-tool wsprrypi.ini dump

    set creates FILE when it does not exist yet.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        ini = IniFile()
        ini.set_filename(args.filename, load=args.command != "set" or os.path.exists(args.filename))
        if args.command == "get":
            print(format_value(GETTERS[args.type](ini, args.section, args.key)))
        elif args.command == "set":
            set_typed_value(ini, args.section, args.key, args.value, args.type)
            ini.commit_changes()
        else:
            for section in ini.sections():
                print(f"[{section}]")
                for key in ini.keys(section):
                    print(f"{key} = {ini.get_value(section, key)}")
    except IniFileError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
