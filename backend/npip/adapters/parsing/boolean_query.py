"""
Boolean Query Engine
AND / OR / NOT keyword expressions evaluated against free text
"""

import re
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Operator:
    precedence: int  # higher binds tighter
    arity: int


OPERATORS = {
    "NOT": Operator(precedence=3, arity=1),
    "AND": Operator(precedence=2, arity=2),
    "OR": Operator(precedence=1, arity=2),
}

LPAREN = "("
RPAREN = ")"

# Devanagari vowel signs and viramas are not \w; keep the whole block
_DISALLOWED = re.compile(r"[^\w\s()\u0900-\u097F]")
_PARENS = re.compile(r"[()]")


def sanitize_query(query: str) -> str:
    """Replace everything except word characters, Devanagari, whitespace and parentheses"""
    return _DISALLOWED.sub(" ", query or "").strip()


def tokenize(query: str) -> List[str]:
    """Split a query into terms, operators and parentheses; operators are upper-cased"""
    spaced = _PARENS.sub(lambda m: f" {m.group(0)} ", query or "")
    tokens = []
    for token in spaced.split():
        upper = token.upper()
        tokens.append(upper if upper in OPERATORS else token)
    return tokens


def to_postfix(tokens: List[str]) -> List[str]:
    """
    Shunting-yard conversion to postfix.

    Unmatched parentheses are dropped rather than reported.
    """
    output: List[str] = []
    stack: List[str] = []

    for token in tokens:
        if token in OPERATORS:
            op = OPERATORS[token]
            # Prefix NOT is right-associative: it never pops on arrival
            if op.arity == 2:
                while stack and stack[-1] in OPERATORS and OPERATORS[stack[-1]].precedence >= op.precedence:
                    output.append(stack.pop())
            stack.append(token)
        elif token == LPAREN:
            stack.append(token)
        elif token == RPAREN:
            while stack and stack[-1] != LPAREN:
                output.append(stack.pop())
            if stack:
                stack.pop()
        else:
            output.append(token)

    while stack:
        token = stack.pop()
        if token != LPAREN:
            output.append(token)

    return output


def evaluate_boolean_query(query: str, text: str) -> bool:
    """
    Evaluate a query against text.

    An empty query matches everything. Terms match by case-insensitive
    substring containment; missing operands count as False.
    """
    if not query:
        return True
    tokens = tokenize(query)
    if not tokens:
        return True

    haystack = (text or "").lower()
    stack: List[bool] = []

    for token in to_postfix(tokens):
        op = OPERATORS.get(token)
        if op is None:
            stack.append(token.lower() in haystack)
        elif op.arity == 1:
            value = stack.pop() if stack else False
            stack.append(not value)
        else:
            right = stack.pop() if stack else False
            left = stack.pop() if stack else False
            stack.append(left and right if token == "AND" else left or right)

    return bool(stack.pop()) if stack else False
