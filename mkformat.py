#!/usr/bin/env python

import sys
from makelite import lexer

filename = sys.argv[1]
source = None

with open(filename, 'r') as fh:
    source = fh.read()

tokens = lexer.tokenize(source, filename)
print(lexer.tosource(source, tokens))
