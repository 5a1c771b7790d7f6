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

from argparse import ArgumentParser
from io import StringIO
import itertools
import operator
import logging
import re
import sys
from . import tokenizer
from .tokenizer import Token, MAX_LINES

log = logging.getLogger (__name__)

class Execution_Error (Exception):
    """ Error while executing a statement """
# end class Execution_Error

def int_divide (a, b):
    """ Integer division truncating toward zero
    >>> int_divide (7, 2)
    3
    >>> int_divide (-7, 2)
    -3
    >>> int_divide (7, -2)
    -3
    >>> int_divide (-7, -2)
    3
    """
    if b == 0:
        raise Execution_Error ('Division by zero')
    q = abs (a) // abs (b)
    if (a < 0) != (b < 0):
        return -q
    return q
# end def int_divide

class Goto:
    """ Control signal: Continue execution at given line """

    def __init__ (self, lineno):
        self.lineno = lineno
    # end def __init__

    def __repr__ (self):
        return 'Goto (%d)' % self.lineno
    # end def __repr__

# end class Goto

class Terminate:
    """ Control signal: Stop execution """

    def __repr__ (self):
        return 'Terminate ()'
    # end def __repr__

# end class Terminate

class Variables:
    """ Global variables, string variables (name ends with '$') and
        integer variables are kept apart. Unset variables are 0 or
        the empty string.
    >>> v = Variables ()
    >>> v.get ('A$')
    ''
    >>> v.get ('A')
    0
    """

    def __init__ (self):
        self.ints    = {}
        self.strings = {}
    # end def __init__

    def __str__ (self):
        s, i = self.snapshot ()
        return 'Strings: %s Integers: %s' % (s, i)
    # end def __str__

    def get (self, name):
        if name.endswith ('$'):
            return self.strings.get (name, '')
        return self.ints.get (name, 0)
    # end def get

    def set (self, name, value):
        if name.endswith ('$'):
            assert isinstance (value, str)
            self.strings [name] = value
        else:
            self.ints [name] = int (value)
    # end def set

    def snapshot (self):
        strings = dict (sorted (self.strings.items ()))
        ints    = dict (sorted (self.ints.items ()))
        return strings, ints
    # end def snapshot

# end class Variables

class Line_Slot:

    def __init__ (self, raw = '', statement = None):
        self.used      = statement is not None
        self.raw       = raw
        self.statement = statement
    # end def __init__

# end class Line_Slot

class Program:
    """ Program lines indexed by line number
    """

    unused = Line_Slot ()

    def __init__ (self):
        self.lines = [self.unused] * MAX_LINES
    # end def __init__

    def __getitem__ (self, lineno):
        return self.lines [lineno]
    # end def __getitem__

    def __iter__ (self):
        """ Line number and slot of used lines """
        for lineno, slot in enumerate (self.lines):
            if slot.used:
                yield lineno, slot
    # end def __iter__

    def __len__ (self):
        return len (self.lines)
    # end def __len__

    def listing (self):
        for lineno, slot in self:
            yield '%d: %s' % (lineno, slot.raw)
    # end def listing

    def listing_debug (self):
        for lineno, slot in self:
            yield '%d: %s' % (lineno, slot.statement)
    # end def listing_debug

    def store_line (self, lineno, statement, raw):
        """ Replace line, a statement of None removes the line """
        tokenizer.check_line_number (lineno)
        if statement is None:
            self.lines [lineno] = self.unused
        else:
            self.lines [lineno] = Line_Slot (raw, statement)
    # end def store_line

# end class Program

class Screen:
    """ Terminal output and input for the INPUT statement
        When reading from a file the prompt and the line read are
        echoed to the output.
    """

    # Only ascii digits, int () would also take '1_000'
    integer = re.compile (r'[-+]?[0-9]+')

    def __init__ (self, ofile = None, ifile = None):
        self.ofile = ofile or sys.stdout
        self.ifile = ifile
    # end def __init__

    def _readline (self, prompt):
        """ Return line without line end or None at end of input """
        if self.ifile is not None:
            self.cmd_print (prompt, end = '')
            line = self.ifile.readline ()
            if not line:
                self.cmd_print ('')
                return None
            line = line.rstrip ('\r\n')
            self.cmd_print (line)
            return line
        try:
            return input (prompt)
        except EOFError:
            return None
    # end def _readline

    def cmd_input (self, prompt):
        line = self._readline (prompt)
        if line is None:
            return ''
        return line
    # end def cmd_input

    def cmd_input_int (self, prompt):
        """ Prompt until we get an integer """
        while True:
            line = self._readline (prompt)
            if line is None:
                return 0
            line = line.strip ()
            if self.integer.fullmatch (line):
                return int (line)
    # end def cmd_input_int

    def cmd_print (self, s, end = None):
        print (s, end = end, file = self.ofile)
    # end def cmd_print

# end class Screen

class Interpreter_Test:
    """ This is used for testing: redirecting output and errors,
        optionally redirecting input and passing the program as an
        iterable.
    """

    def __init__ (self, program, hook = None, input = None):
        self.program = program
        self.hook    = hook
        self.input   = input
        if isinstance (input, str):
            self.input = StringIO (input)
        self.output  = StringIO ()
        self.errors  = StringIO ()
    # end def __init__

    def stack_height (self):
        height = 2
        frame  = sys._getframe (height)
        for height in itertools.count (height):
            frame = frame.f_back
            if not frame:
                return height
    # end def stack_height

# end class Interpreter_Test

class Executor:
    """ Execute statements with a given variable environment
        GOTO and EXIT are not executed but returned as control signal
        to the caller, this also happens from the branches of an IF.
    """

    executable = set (('LET', 'PRINT', 'INPUT', 'IF'))

    arithmetic = dict \
        ( PLUS   = operator.add
        , MINUS  = operator.sub
        , TIMES  = operator.mul
        , DIVIDE = int_divide
        , AND    = operator.and_
        , OR     = operator.or_
        , XOR    = operator.xor
        )

    comparison = dict \
        ( EQ = operator.eq
        , NE = operator.ne
        , GT = operator.gt
        , LT = operator.lt
        , GE = operator.ge
        , LE = operator.le
        )

    def __init__ (self, screen, efile = None, hook = None):
        self.screen       = screen
        self.efile        = efile or sys.stderr
        self.hook         = hook
        self.running      = False
        self.lineno       = None
        self.break_lineno = None
    # end def __init__

    def execute (self, statement, var):
        """ Execute statement, return None or a control signal """
        kind = statement.kind
        if kind == 'GOTO':
            return Goto (statement.keyword.ival)
        if kind == 'EXIT':
            return Terminate ()
        if kind not in self.executable:
            raise Execution_Error \
                ('Unexpected token in this context: %s' % statement.keyword)
        method = getattr (self, 'cmd_' + kind.lower ())
        return method (statement, var)
    # end def execute

    def raise_error (self, err, lineno = None):
        if lineno is None:
            msg = 'Error: %s' % err
        else:
            msg = 'Error: %s in line %d' % (err, lineno)
        log.info (msg)
        print (msg, file = self.efile)
    # end def raise_error

    def run (self, program, var, lineno = 0):
        """ Run program starting at lineno until it runs past the last
            line, hits EXIT or an error occurs.
        """
        log.info ('Run from line %d', lineno)
        self.running = True
        while self.running and 0 <= lineno < len (program):
            slot = program [lineno]
            if not slot.used:
                lineno += 1
                continue
            if lineno == self.break_lineno:
                import pdb; pdb.set_trace ()
            self.lineno = lineno
            if self.hook:
                self.hook (self)
            log.debug ('%d: %s', lineno, slot.statement)
            try:
                signal = self.execute (slot.statement, var)
            except Execution_Error as err:
                self.raise_error (err, lineno)
                break
            if signal is None:
                lineno += 1
            elif isinstance (signal, Goto):
                lineno = signal.lineno
            else:
                break
        self.running = False
        self.lineno  = None
        log.info ('Run stopped')
    # end def run

    def value (self, tok, var):
        if tok.kind == 'NUMBER':
            return tok.ival
        if tok.kind == 'STRING':
            return tok.sval
        if tok.kind in Token.identifiers:
            return var.get (tok.sval)
        raise Execution_Error ('Expected value, got %s' % tok)
    # end def value

    def assign (self, target, mode, value, var):
        """ Compute target <mode> value and store the result in target
            Nothing is stored on error.
        """
        name = target.sval
        if target.kind == 'STRVAR':
            if not isinstance (value, str):
                raise Execution_Error \
                    ('Type mismatch: integer value for %s' % name)
            if mode == 'EQ':
                result = value
            elif mode == 'PLUS':
                result = var.get (name) + value
            else:
                raise Execution_Error \
                    ( 'Unsupported operator %s for string variable %s'
                    % (Token (mode), name)
                    )
        else:
            if isinstance (value, str):
                raise Execution_Error \
                    ('Type mismatch: string value for %s' % name)
            if mode == 'EQ':
                result = value
            else:
                result = self.arithmetic [mode] (var.get (name), value)
        var.set (name, result)
    # end def assign

    def predicate (self, condition, var):
        """ Evaluate <operand> <comparison> <operand>
            When comparing a string with an integer the length of the
            string is compared.
        """
        if len (condition) < 3:
            raise Execution_Error ('Too few operands in IF condition')
        if len (condition) > 3:
            raise Execution_Error ('Too many operands in IF condition')
        lhs, op, rhs = condition
        if op.kind not in self.comparison:
            raise Execution_Error ('Not a comparison operator: %s' % op)
        a = self.value (lhs, var)
        b = self.value (rhs, var)
        if isinstance (a, str) != isinstance (b, str):
            if isinstance (a, str):
                a = len (a)
            else:
                b = len (b)
        return self.comparison [op.kind] (a, b)
    # end def predicate

    # COMMANDS

    def cmd_if (self, statement, var):
        if self.predicate (statement.args, var):
            return self.execute (statement.then, var)
        if statement.otherwise is not None:
            return self.execute (statement.otherwise, var)
        return None
    # end def cmd_if

    def cmd_input (self, statement, var):
        prompt, target = statement.args
        if prompt.kind == 'STRVAR':
            prompt = var.get (prompt.sval)
        else:
            prompt = prompt.sval
        if target.kind == 'STRVAR':
            var.set (target.sval, self.screen.cmd_input (prompt))
        else:
            var.set (target.sval, self.screen.cmd_input_int (prompt))
    # end def cmd_input

    def cmd_let (self, statement, var):
        """ Walk the tokens: An identifier without a target becomes the
            target, an operator sets the mode and a value is combined
            with the target according to mode. The field separator
            starts the next assignment.
        """
        target = mode = None
        for tok in statement.args:
            if tok.kind == 'SEMIC':
                target = mode = None
            elif target is None:
                if tok.kind not in Token.identifiers:
                    raise Execution_Error \
                        ('Bad assignment target %s in LET clause' % tok)
                target = tok
            elif tok.kind in Token.comparisons and tok.kind != 'EQ':
                raise Execution_Error \
                    ('Unsupported operator %s in LET clause' % tok)
            elif tok.kind == 'EQ' or tok.kind in Token.operators:
                if mode is not None:
                    raise Execution_Error \
                        ('Bad assignment in LET clause: %s after %s'
                        % (tok, Token (mode))
                        )
                mode = tok.kind
            elif mode is None:
                raise Execution_Error \
                    ('Bad assignment in LET clause: no operator before %s' % tok)
            else:
                self.assign (target, mode, self.value (tok, var), var)
                mode = None
        if mode is not None:
            raise Execution_Error ('Bad assignment in LET clause: no value')
    # end def cmd_let

    def cmd_print (self, statement, var):
        r = []
        for tok in statement.args:
            r.append (str (self.value (tok, var)))
        self.screen.cmd_print (''.join (r))
    # end def cmd_print

# end class Executor

class Interpreter (Executor):
    """ Line oriented shell: Lines starting with a number are stored
        in the program, other lines are either shell commands or
        statements that are executed immediately.
    """

    shell_commands = set (('LIST', 'LISTDEBUG', 'REM', 'RUN', 'VARS'))

    def __init__ (self, args, test = None):
        self.args  = args
        self.test  = test
        self.input = None
        if test is not None and test.input is not None:
            self.input = test.input
        elif args.input_file:
            self.input = open (args.input_file, 'r')
        self.ofile = None
        efile      = None
        hook       = None
        if test is not None:
            self.ofile = test.output
            efile      = test.errors
            hook       = test.hook
        elif args.output_file:
            self.ofile = open (args.output_file, 'w')
        super ().__init__ (Screen (self.ofile, self.input), efile, hook)
        self.tokenizer    = tokenizer.Tokenizer ()
        self.program      = Program ()
        self.var          = Variables ()
        self.done         = False
        self.break_lineno = args.break_line
    # end def __init__

    def close (self):
        """ Close input and output files opened from the command line """
        if self.test:
            return
        if self.ofile:
            self.ofile.close ()
            self.ofile = None
        if self.input:
            self.input.close ()
            self.input = None
    # end def close

    def command (self, line):
        """ Execute one line of input """
        text  = line.rstrip ('\r\n').lstrip ()
        words = text.split (' ')
        if not words [0]:
            return
        cmd = words [0].upper ()
        if cmd in self.shell_commands:
            getattr (self, 'shell_' + cmd.lower ()) (words [1:])
            return
        lineno = self.tokenizer.number (words [0])
        if lineno is not None:
            self.store (lineno, words [1:])
        else:
            self.immediate (words)
    # end def command

    def feed (self, lines):
        for line in lines:
            self.command (line)
            if self.done:
                break
    # end def feed

    def immediate (self, words):
        try:
            statement = self.tokenizer.tokenize (words)
            signal    = self.execute (statement, self.var)
        except (tokenizer.Lex_Error, Execution_Error) as err:
            self.raise_error (err)
            return
        if isinstance (signal, Goto):
            self.run (self.program, self.var, signal.lineno)
        elif isinstance (signal, Terminate):
            self.done = True
    # end def immediate

    def store (self, lineno, words):
        raw = ' '.join (words)
        try:
            tokenizer.check_line_number (lineno)
            statement = None
            if raw.strip ():
                statement = self.tokenizer.tokenize (words)
            self.program.store_line (lineno, statement, raw)
        except tokenizer.Lex_Error as err:
            self.raise_error (err, lineno)
            return
        log.debug ('Stored line %d: %s', lineno, statement)
    # end def store

    # SHELL COMMANDS

    def shell_list (self, args):
        for line in self.program.listing ():
            self.screen.cmd_print (line)
    # end def shell_list

    def shell_listdebug (self, args):
        for line in self.program.listing_debug ():
            self.screen.cmd_print (line)
    # end def shell_listdebug

    def shell_rem (self, args):
        pass
    # end def shell_rem

    def shell_run (self, args):
        self.run (self.program, self.var)
    # end def shell_run

    def shell_vars (self, args):
        self.screen.cmd_print (str (self.var))
    # end def shell_vars

# end class Interpreter

def options (argv):
    cmd = ArgumentParser ()
    cmd.add_argument \
        ( 'program'
        , help  = 'Basic commands to execute, default is standard input'
        , nargs = '?'
        )
    cmd.add_argument \
        ( '-D', '--debug'
        , help   = 'Log every executed line, needs --log-file'
        , action = 'store_true'
        )
    cmd.add_argument \
        ( '-i', '--input-file'
        , help = 'Read input from file instead of stdin'
        )
    cmd.add_argument \
        ( '-l', '--log-file'
        , help = 'Write log messages to given file'
        )
    cmd.add_argument \
        ( '-o', '--output-file'
        , help = 'Write output to given file'
        )
    cmd.add_argument \
        ( '-L', '--break-line'
        , help = 'Line in basic where to stop in (python-) debugger'
        , type = int
        )
    args = cmd.parse_args (argv)
    return args
# end def options

def main (argv = sys.argv [1:]):
    args = options (argv)
    if args.log_file:
        logging.basicConfig \
            ( level    = logging.DEBUG if args.debug else logging.INFO
            , filename = args.log_file
            , filemode = 'w'
            , format   = '%(filename)10s: %(lineno)5d: %(message)s'
            )
    interpreter = Interpreter (args)
    try:
        if args.program:
            with open (args.program, 'r') as f:
                interpreter.feed (f)
        else:
            interpreter.feed (iter (sys.stdin.readline, ''))
    finally:
        interpreter.close ()
# end def main

if __name__ == '__main__':
    main ()
