#!/usr/bin/python3
# Copyright (C) 2024 Dr. Ralf Schlatterbeck Open Source Consulting.
# Reichergasse 131, A-3411 Weidling.
# Web: http://www.runtux.com Email: office@runtux.com
# All rights reserved
# ****************************************************************************
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
# 
#   The above copyright notice and this permission notice shall be included in
#   all copies or substantial portions of the Software.
# 
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
# ****************************************************************************

from ply import lex

# Line numbers are in range 0 <= n < MAX_LINES
MAX_LINES = 65536

class Lex_Error (ValueError):
    """ Statement text that cannot be tokenized """
# end class Lex_Error

def check_line_number (lineno):
    if not 0 <= lineno < MAX_LINES:
        raise Lex_Error \
            ( "Line number %d isn't in range 0-%d"
            % (lineno, MAX_LINES - 1)
            )
    return lineno
# end def check_line_number

class Token:
    """ A lexical unit of a statement
        Integer constants and GOTO carry their number in ival,
        identifiers and string constants their text in sval.
    >>> str (Token ('GOTO', ival = 42))
    'GOTO 42'
    """

    comparisons = set (('EQ', 'NE', 'GT', 'LT', 'GE', 'LE'))
    operators   = set \
        (('PLUS', 'MINUS', 'TIMES', 'DIVIDE', 'AND', 'OR', 'XOR'))
    identifiers = set (('VAR', 'STRVAR'))

    symbols = dict \
        ( EQ     = '='
        , NE     = '!='
        , GT     = '>'
        , LT     = '<'
        , GE     = '>='
        , LE     = '<='
        , PLUS   = '+'
        , MINUS  = '-'
        , TIMES  = '*'
        , DIVIDE = '/'
        , AND    = '&'
        , OR     = '|'
        , XOR    = '^'
        , SEMIC  = ';'
        , EXIT   = 'END'
        )

    def __init__ (self, kind, ival = None, sval = None):
        self.kind = kind
        self.ival = ival
        self.sval = sval
    # end def __init__

    def __eq__ (self, other):
        if not isinstance (other, Token):
            return NotImplemented
        return \
            (   self.kind == other.kind
            and self.ival == other.ival
            and self.sval == other.sval
            )
    # end def __eq__

    def __repr__ (self):
        return 'Token (%s, %r, %r)' % (self.kind, self.ival, self.sval)
    # end def __repr__

    def __str__ (self):
        if self.kind == 'GOTO':
            return 'GOTO %d' % self.ival
        if self.kind == 'NUMBER':
            return str (self.ival)
        if self.kind == 'STRING':
            return '"%s"' % self.sval.replace ('"', '\\"')
        if self.kind in self.identifiers:
            return self.sval
        return self.symbols.get (self.kind, self.kind)
    # end def __str__

# end class Token

class Statement:
    """ A tokenized statement: The keyword token and its arguments.
        An IF statement has the tokens of its condition as arguments
        and the branches as nested statements in 'then' and
        'otherwise'. The flat token sequence (for listing) has THEN
        and ELSE markers in front of the branches.
    """

    def __init__ (self, keyword, args = None, then = None, otherwise = None):
        self.keyword   = keyword
        self.args      = args or []
        self.then      = then
        self.otherwise = otherwise
    # end def __init__

    def __iter__ (self):
        return iter (self.tokens)
    # end def __iter__

    def __len__ (self):
        return len (self.tokens)
    # end def __len__

    def __repr__ (self):
        return 'Statement (%s)' % self
    # end def __repr__

    def __str__ (self):
        return ' '.join (str (t) for t in self.tokens)
    # end def __str__

    @property
    def kind (self):
        return self.keyword.kind
    # end def kind

    @property
    def tokens (self):
        tokens = [self.keyword] + self.args
        if self.then is not None:
            tokens.append (Token ('THEN'))
            tokens.extend (self.then.tokens)
        if self.otherwise is not None:
            tokens.append (Token ('ELSE'))
            tokens.extend (self.otherwise.tokens)
        return tokens
    # end def tokens

# end class Statement

class Tokenizer:
    """ Turn the words of a statement into a Statement.
        Single words are classified by a ply lexer, the grammar of
        each keyword is checked by the lex_<keyword> methods.
    """

    keywords = dict \
        ( BYE   = 'EXIT'
        , END   = 'EXIT'
        , EXIT  = 'EXIT'
        , GOTO  = 'GOTO'
        , IF    = 'IF'
        , INPUT = 'INPUT'
        , LET   = 'LET'
        , PRINT = 'PRINT'
        , QUIT  = 'EXIT'
        )

    if_usage    = \
        'IF statements must be in the form IF...THEN or IF...THEN...ELSE'
    input_usage = 'INPUT statements must be in the form INPUT PROMPT VAR'
    let_incomplete = dict \
        ( target = 'Incomplete LET expression; expected identifier'
        , op     = 'Incomplete LET expression; expected operator'
        , value  = 'Expected constant'
        )

    tokens = \
        [ 'AND'
        , 'DIVIDE'
        , 'EQ'
        , 'GE'
        , 'GT'
        , 'LE'
        , 'LT'
        , 'MINUS'
        , 'NE'
        , 'NUMBER'
        , 'OR'
        , 'PLUS'
        , 'SEMIC'
        , 'STRING'
        , 'STRVAR'
        , 'TIMES'
        , 'VAR'
        , 'XOR'
        ]

    t_AND    = r'&'
    t_DIVIDE = r'/'
    t_EQ     = r'==?'
    t_GE     = r'>='
    t_GT     = r'>'
    t_LE     = r'<='
    t_LT     = r'<'
    t_MINUS  = r'-'
    t_NE     = r'!='
    t_OR     = r'[|]'
    t_PLUS   = r'\+'
    t_SEMIC  = r';'
    t_TIMES  = r'\*'
    t_XOR    = r'\^'

    def t_NUMBER (self, t):
        r'[-+]?[0-9]+'
        t.value = int (t.value)
        return t
    # end def t_NUMBER

    def t_STRING (self, t):
        r'["].*'
        return t
    # end def t_STRING

    def t_VAR (self, t):
        r'[^\W\d_]+[$]?'
        if t.value.endswith ('$'):
            t.type = 'STRVAR'
        return t
    # end def t_VAR

    def t_error (self, t):
        self.garbage = True
        t.lexer.skip (len (t.value))
    # end def t_error

    # END TOKEN DEFINITION

    def __init__ (self, **kw):
        self.garbage = False
        self.lexer   = lex.lex (module = self, **kw)
    # end def __init__

    def classify (self, word):
        """ Return the ply token if word is exactly one lexeme.
        """
        self.garbage = False
        self.lexer.input (word)
        toks = list (iter (self.lexer.token, None))
        if self.garbage or len (toks) != 1:
            return None
        tok = toks [0]
        # \w also matches some non-letters (e.g. superscript digits)
        if tok.type in Token.identifiers and not tok.value.rstrip ('$').isalpha ():
            return None
        return tok
    # end def classify

    def number (self, word):
        """ Integer value of word or None if it isn't a decimal number
        """
        tok = self.classify (word)
        if tok is None or tok.type != 'NUMBER':
            return None
        return tok.value
    # end def number

    def closes_string (self, word):
        return word.endswith ('"') and not word.endswith ('\\"')
    # end def closes_string

    def string_end (self, words, idx):
        """ Index after the string constant starting at words [idx]
            or None if the string is not terminated.
        """
        if len (words [idx]) > 1 and self.closes_string (words [idx]):
            return idx + 1
        for n in range (idx + 1, len (words)):
            if self.closes_string (words [n]):
                return n + 1
        return None
    # end def string_end

    def string (self, words, idx):
        """ Snarf a string constant starting at words [idx], it may
            extend over several words, these are joined with a single
            space. Returns the token and the index of the next word.
        """
        end = self.string_end (words, idx)
        if end is None:
            raise Lex_Error \
                ('Unterminated string %s' % ' '.join (words [idx:]))
        s = ' '.join (words [idx:end]) [1:-1]
        return Token ('STRING', sval = s.replace ('\\"', '"')), end
    # end def string

    def identifier (self, word):
        tok = self.classify (word)
        if tok is None or tok.type not in Token.identifiers:
            raise Lex_Error ('Invalid identifier %s' % word)
        return Token (tok.type, sval = tok.value)
    # end def identifier

    def line_number (self, word):
        n = self.number (word)
        if n is None:
            raise Lex_Error ('Bad line number "%s"' % word)
        return check_line_number (n)
    # end def line_number

    def value (self, words, idx):
        """ Identifier, integer or string constant at words [idx]
            Returns the token and the index of the next word.
        """
        word = words [idx]
        tok  = self.classify (word)
        if tok is not None:
            if tok.type == 'STRING':
                return self.string (words, idx)
            if tok.type in Token.identifiers:
                return Token (tok.type, sval = tok.value), idx + 1
            if tok.type == 'NUMBER':
                return Token ('NUMBER', ival = tok.value), idx + 1
        raise Lex_Error ('Integer constant "%s" not parsed' % word)
    # end def value

    def bare_words (self, words):
        """ Yield index and word of non-empty words outside of string
            constants
        """
        idx = 0
        while idx < len (words):
            word = words [idx]
            if word.startswith ('"'):
                end = self.string_end (words, idx)
                if end is None:
                    raise Lex_Error \
                        ('Unterminated string %s' % ' '.join (words [idx:]))
                idx = end
                continue
            if word:
                yield idx, word
            idx += 1
    # end def bare_words

    def expression (self, words):
        """ Operators and values in any order, the condition of an IF
            is checked when it is evaluated.
        """
        tokens = []
        idx    = 0
        while idx < len (words):
            word = words [idx]
            if not word:
                idx += 1
                continue
            tok = self.classify (word)
            if  (   tok is not None
                and (tok.type in Token.comparisons or tok.type in Token.operators)
                ):
                tokens.append (Token (tok.type))
                idx += 1
            else:
                tok, idx = self.value (words, idx)
                tokens.append (tok)
        return tokens
    # end def expression

    def tokenize (self, words):
        """ Tokenize a statement given as list of words, the first word
            is the keyword.
        >>> t = Tokenizer ()
        >>> print (t.tokenize ('GOTO 10'.split (' ')))
        GOTO 10
        >>> print (t.tokenize ('IF A$ = "x y" THEN END ELSE LET X + 1'.split (' ')))
        IF A$ = "x y" THEN END ELSE LET X + 1
        >>> [tok.kind for tok in t.tokenize (['PRINT', '"a', 'b"', 'X'])]
        ['PRINT', 'STRING', 'VAR']
        """
        words = list (words)
        while words and not words [0]:
            del words [0]
        if not words:
            raise Lex_Error ('Empty statement')
        kw = words [0].upper ()
        if kw not in self.keywords:
            raise Lex_Error ('Unknown keyword %s' % kw)
        method = getattr (self, 'lex_' + self.keywords [kw].lower ())
        return method (words [1:])
    # end def tokenize

    # Grammar of keywords, called with the words after the keyword

    def lex_exit (self, words):
        return Statement (Token ('EXIT'))
    # end def lex_exit

    def lex_goto (self, words):
        words = [w for w in words if w]
        if not words:
            raise Lex_Error ('GOTO statement requires a line number')
        if len (words) > 1:
            raise Lex_Error \
                ('Unexpected "%s" after GOTO line number' % ' '.join (words [1:]))
        return Statement (Token ('GOTO', ival = self.line_number (words [0])))
    # end def lex_goto

    def lex_if (self, words):
        then_pos = else_pos = None
        depth    = 0
        # IF only starts a nested statement right after THEN or ELSE,
        # elsewhere it is a variable
        at_start = False
        for idx, word in self.bare_words (words):
            w = word.upper ()
            if then_pos is None:
                if w == 'THEN':
                    then_pos = idx
                    at_start = True
                elif w == 'ELSE':
                    raise Lex_Error (self.if_usage)
            elif w == 'ELSE':
                # A nested IF takes the nearest ELSE
                if not depth:
                    else_pos = idx
                    break
                depth   -= 1
                at_start = True
            elif w == 'THEN':
                at_start = True
            else:
                if at_start and w == 'IF':
                    depth += 1
                at_start = False
        if then_pos is None:
            raise Lex_Error (self.if_usage)
        then_words = words [then_pos + 1:else_pos]
        else_words = None
        if else_pos is not None:
            else_words = words [else_pos + 1:]
        if not any (then_words) or else_words is not None and not any (else_words):
            raise Lex_Error (self.if_usage)
        condition = self.expression (words [:then_pos])
        then      = self.tokenize (then_words)
        otherwise = None
        if else_words is not None:
            otherwise = self.tokenize (else_words)
        return Statement (Token ('IF'), condition, then, otherwise)
    # end def lex_if

    def lex_input (self, words):
        if len ([w for w in words if w]) < 2:
            raise Lex_Error (self.input_usage)
        idx = 0
        while not words [idx]:
            idx += 1
        tok = self.classify (words [idx])
        if tok is None:
            raise Lex_Error (self.input_usage)
        if tok.type == 'VAR':
            raise Lex_Error ('Cannot use integer variable as a prompt in INPUT')
        if tok.type == 'STRVAR':
            prompt = Token ('STRVAR', sval = tok.value)
            idx += 1
        elif tok.type == 'STRING':
            prompt, idx = self.string (words, idx)
        else:
            raise Lex_Error (self.input_usage)
        rest = [w for w in words [idx:] if w]
        if len (rest) != 1:
            raise Lex_Error (self.input_usage)
        return Statement (Token ('INPUT'), [prompt, self.identifier (rest [0])])
    # end def lex_input

    def lex_let (self, words):
        """ LET <var> <op> <value> [<op> <value>...] [; <var> ...]
            The state is what we expect next, 'next' is either an
            operator or a field separator.
        """
        args  = []
        state = 'target'
        idx   = 0
        while idx < len (words):
            word = words [idx]
            if not word:
                idx += 1
                continue
            if state == 'value':
                tok, idx = self.value (words, idx)
                args.append (tok)
                state = 'next'
                continue
            if state == 'target':
                args.append (self.identifier (word))
                state = 'op'
            else:
                tok = self.classify (word)
                if tok is None:
                    raise Lex_Error ('Unknown token %s in LET clause' % word)
                if state == 'next' and tok.type == 'SEMIC':
                    args.append (Token ('SEMIC'))
                    state = 'target'
                elif tok.type == 'EQ' or tok.type in Token.operators:
                    args.append (Token (tok.type))
                    state = 'value'
                elif tok.type in Token.comparisons:
                    raise Lex_Error \
                        ('Unsupported operator %s in LET clause' % word)
                else:
                    raise Lex_Error ('Unknown token %s in LET clause' % word)
            idx += 1
        if state != 'next':
            raise Lex_Error (self.let_incomplete [state])
        return Statement (Token ('LET'), args)
    # end def lex_let

    def lex_print (self, words):
        args = []
        idx  = 0
        while idx < len (words):
            if not words [idx]:
                idx += 1
                continue
            tok, idx = self.value (words, idx)
            args.append (tok)
        return Statement (Token ('PRINT'), args)
    # end def lex_print

# end class Tokenizer
