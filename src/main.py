import logging
import sys

from errors import C4Error
from lexer import C4Lexer, print_tokens
from parser import Parser
from vm import VM

DEFAULT_RECURSION_LIMIT = 10000


def read_input(argv):
    if len(argv) == 2:
        with open(argv[1], "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def usage():
    print("Usage:")
    print("  c4 [--debug] [--recursion-limit N] lex < input.c4")
    print("  c4 [--debug] [--recursion-limit N] parse < input.c4")
    print("  c4 [--debug] [--recursion-limit N] run < input.c4")
    print("  or:")
    print("  c4 lex file.c4")
    print("  c4 parse file.c4")
    print("  c4 run file.c4")


def parse_source(data, vm=None):
    """Parse ``data``; enum constants land in ``vm`` (a fresh VM if omitted)."""
    vm = vm if vm is not None else VM()
    lexer = C4Lexer()
    lexer.input(data)
    return Parser(lexer, vm).parse_program(), vm


def run_source(data, out=None):
    """Parse and execute a whole program, returning the finished VM."""
    vm = VM(out=out)
    program, _ = parse_source(data, vm)
    vm.run(program)
    return vm


def format_result(vm):
    s = vm.get_result_str()
    if s is not None:
        return f'Program finished. Final result = "{s}"'
    return f"Program finished. Final result = {vm.get_result()}"


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)

    debug = False
    recursion_limit = DEFAULT_RECURSION_LIMIT
    while args and args[0].startswith("--"):
        opt = args.pop(0)
        if opt == "--debug":
            debug = True
        elif opt == "--recursion-limit" and args and args[0].isdigit():
            recursion_limit = int(args.pop(0))
        else:
            usage()
            return 1

    if not args or len(args) > 2:
        usage()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.setrecursionlimit(max(sys.getrecursionlimit(), recursion_limit))

    mode = args[0].lower()
    if mode not in ("lex", "parse", "run"):
        usage()
        return 1
    data = read_input(args)

    try:
        if mode == "lex":
            print_tokens(C4Lexer().tokenize(data))
            return 0

        if mode == "parse":
            program, _ = parse_source(data)
            for st in program:
                print(st)
            return 0

        vm = run_source(data)
    except C4Error as e:
        print(str(e))
        return 1

    print(format_result(vm))
    return 0


if __name__ == "__main__":
    sys.exit(main())
