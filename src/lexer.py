
import ply.lex as lex

from errors import LexError

INT_MAX = 2**31 - 1

ESCAPES = {
    'n': '\n',
    't': '\t',
    '"': '"',
    "'": "'",
    '\\': '\\',
    '0': '\0',
}


class C4Lexer:

    tokens = (
        # Keywords
        'RETURN', 'IF', 'ELSE', 'WHILE', 'LET', 'FN',
        'TRUE', 'FALSE', 'PRINT', 'ENUM', 'SIZEOF',

        # Identifiers and values
        'ID', 'NUMBER', 'STRING', 'CHAR',

        # Two-character operators
        'DBL_COLON', 'EQ_EQ', 'NOT_EQ', 'LESS_EQ', 'GREATER_EQ',
        'AND', 'OR', 'SHL', 'SHR', 'PLUS_PLUS', 'MINUS_MINUS',

        # Single-character operators
        'PLUS', 'MINUS', 'MULT', 'DIV', 'MOD',
        'EQ', 'LESS_THAN', 'GREATER_THAN', 'NOT',
        'BIT_AND', 'BIT_OR', 'BIT_XOR', 'BIT_NOT',
        'QUESTION', 'COLON',

        # Parentheses and brackets
        'LPAREN', 'RPAREN',
        'LSQUAREBR', 'RSQUAREBR',
        'LCURLYEBR', 'RCURLYEBR',

        # Punctuation
        'SEMI_COLON', 'COMMA',
    )

    # int, char, bool, str and void stay identifiers; the parser knows them as type names
    reserved = {
        'return': 'RETURN',
        'if': 'IF',
        'else': 'ELSE',
        'while': 'WHILE',
        'let': 'LET',
        'fn': 'FN',
        'true': 'TRUE',
        'false': 'FALSE',
        'print': 'PRINT',
        'enum': 'ENUM',
        'sizeof': 'SIZEOF',
    }

    # Ignored characters
    t_ignore = ' \t\r'

    #  Longer patterns are tried first
    t_DBL_COLON = r'::'
    t_EQ_EQ = r'=='
    t_NOT_EQ = r'!='
    t_LESS_EQ = r'<='
    t_GREATER_EQ = r'>='
    t_AND = r'&&'
    t_OR = r'\|\|'
    t_SHL = r'<<'
    t_SHR = r'>>'
    t_PLUS_PLUS = r'\+\+'
    t_MINUS_MINUS = r'--'

    # Single-character operators
    t_PLUS = r'\+'
    t_MINUS = r'-'
    t_MULT = r'\*'
    t_DIV = r'/'
    t_MOD = r'%'
    t_EQ = r'='
    t_LESS_THAN = r'<'
    t_GREATER_THAN = r'>'
    t_NOT = r'!'
    t_BIT_AND = r'&'
    t_BIT_OR = r'\|'
    t_BIT_XOR = r'\^'
    t_BIT_NOT = r'~'
    t_QUESTION = r'\?'
    t_COLON = r':'

    # Parentheses and brackets
    t_LPAREN = r'\('
    t_RPAREN = r'\)'
    t_LSQUAREBR = r'\['
    t_RSQUAREBR = r'\]'
    t_LCURLYEBR = r'\{'
    t_RCURLYEBR = r'\}'

    # Punctuation
    t_SEMI_COLON = r';'
    t_COMMA = r','

    def __init__(self):
        self.lexer = None
        self.data = ""

    # Line comments
    def t_COMMENT(self, t):
        r'//[^\n]*'
        pass

    # Double-quoted strings
    def t_STRING(self, t):
        r'"(?:[^"\\\n]|\\.)*"'
        t.value = self._unescape(t.value[1:-1], t)
        return t

    # Character literals
    def t_CHAR(self, t):
        r"'(?:[^'\\\n]|\\.)'"
        t.value = self._unescape(t.value[1:-1], t)
        return t

    # Integer numbers
    def t_NUMBER(self, t):
        r'\d+'
        t.value = int(t.value)
        if t.value > INT_MAX:
            line, col = self._position(t)
            raise LexError(f"Integer literal {t.value} out of range", line, col)
        return t

    # Identifiers
    def t_ID(self, t):
        r'[a-zA-Z_][a-zA-Z_0-9]*'
        t.type = self.reserved.get(t.value, 'ID')
        return t

    #  line number tracking
    def t_newline(self, t):
        r'\n+'
        t.lexer.lineno += len(t.value)

    # Error handling
    def t_error(self, t):
        line, col = self._position(t)
        ch = t.value[0]
        if ch == "'":
            if "'" in t.value.split('\n', 1)[0][1:]:
                raise LexError("Character literal must contain exactly one character", line, col)
            raise LexError("Unterminated character literal", line, col)
        if ch == '"':
            raise LexError("Unterminated string literal", line, col)
        raise LexError(f"Illegal character '{ch}'", line, col)

    def _position(self, t):
        line_start = t.lexer.lexdata.rfind('\n', 0, t.lexpos) + 1
        return t.lineno, t.lexpos - line_start + 1

    def _unescape(self, raw, t):
        out = []
        i = 0
        while i < len(raw):
            ch = raw[i]
            if ch == '\\':
                esc = raw[i + 1]
                if esc not in ESCAPES:
                    line, col = self._position(t)
                    raise LexError(f"Unknown escape sequence '\\{esc}'", line, col + i + 1)
                out.append(ESCAPES[esc])
                i += 2
            else:
                out.append(ch)
                i += 1
        return ''.join(out)

    def build(self, **kwargs):
        """Build the lexer"""
        self.lexer = lex.lex(module=self, **kwargs)
        return self.lexer

    def input(self, data):
        """Restart tokenization over a new source text"""
        if not self.lexer:
            self.build()
        self.data = data
        self.lexer.lineno = 1
        self.lexer.input(data)

    def next_token(self):
        """Return the next token dict; an EOF token once the input is exhausted."""
        tok = self.lexer.token()
        if not tok:
            pos = len(self.data)
            line_start = self.data.rfind('\n', 0, pos) + 1
            return {
                'line': self.lexer.lineno,
                'column': pos - line_start + 1,
                'type': 'EOF',
                'value': None,
                'lexpos': pos,
            }

        # Calculate column number
        line_start = self.data.rfind('\n', 0, tok.lexpos) + 1
        column = tok.lexpos - line_start + 1

        return {
            'line': tok.lineno,
            'column': column,
            'type': tok.type,
            'value': tok.value,
            'lexpos': tok.lexpos,
        }

    def tokenize(self, data):
        self.input(data)
        tokens = []
        while True:
            tok = self.next_token()
            if tok['type'] == 'EOF':
                break
            tokens.append(tok)
        return tokens


def print_tokens(tokens):
    if not tokens:
        print("No tokens found!")
        return

    print(f"{'Line':<6}| {'Column':<7}| {'Token':<20}| Value")
    print("-" * 60)

    for tok in tokens:
        value = str(tok['value'])
        # Display escape characters
        value = repr(value)[1:-1] if '\n' in value or '\t' in value else value

        print(f"{tok['line']:<6}| {tok['column']:<7}| {tok['type']:<20}| {value}")
