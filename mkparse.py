#!/usr/bin/env python

import sys
from makelite import lexer, parser

for f in sys.argv[1:]:
    print("Parsing %s" % f)
    with open(f, 'r') as fd:
        s = fd.read()
    tokens = lexer.tokenize(s, f)
    for t in tokens:
        print(t.describe())
    variables, rules = parser.parse(tokens)
    for v in variables:
        print(v)
    for r in rules:
        print(r)
