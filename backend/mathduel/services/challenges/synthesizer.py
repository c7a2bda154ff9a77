"""Arithmetic challenge synthesis.

Two strategies share the ``generate()`` interface:

- ``AdvancedChallengeGenerator`` is a rejection sampler over random mixed
  expressions, accepting only non-negative integer results below a bound.
- ``ExpertChallengeGenerator`` builds a plain sum, which is always
  acceptable, so it never resamples.
"""

import ast
import random
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Optional, Sequence

from mathduel.errors import GenerationExhausted, InvalidExpression

SUPPORTED_OPERATORS = ('+', '-', '*', '/')

_BINARY_OPS = {
    ast.Add: lambda a, b: a + b,
    ast.Sub: lambda a, b: a - b,
    ast.Mult: lambda a, b: a * b,
    ast.Div: lambda a, b: a / b,
}


@dataclass(frozen=True)
class Challenge:
    question: str
    answer: str

    def to_dict(self) -> Dict[str, str]:
        return {'question': self.question, 'answer': self.answer}


def format_question(expression: str) -> str:
    return "Was ist " + expression + "?"


def evaluate_expression(expr: str) -> Fraction:
    """Evaluate integer arithmetic exactly.

    Only integer literals, ``+ - * /``, parentheses and unary signs are
    allowed. Division is exact (``Fraction``), never truncating.
    Raises InvalidExpression or ZeroDivisionError.
    """
    try:
        tree = ast.parse(expr, mode='eval')
    except SyntaxError as exc:
        raise InvalidExpression(f"Cannot parse expression: {expr!r}") from exc

    def _eval(node):
        if isinstance(node, ast.Expression):
            return _eval(node.body)
        if isinstance(node, ast.Constant) and type(node.value) is int:
            return Fraction(node.value)
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
            return _BINARY_OPS[type(node.op)](_eval(node.left), _eval(node.right))
        if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
            value = _eval(node.operand)
            return -value if isinstance(node.op, ast.USub) else value
        raise InvalidExpression(f"Illegal expression: {type(node).__name__}")

    return _eval(tree)


class ChallengeGenerator:
    """Strategy interface for challenge synthesis."""

    mode = None

    def generate(self) -> Challenge:
        raise NotImplementedError


class AdvancedChallengeGenerator(ChallengeGenerator):
    mode = 'advanced'

    def __init__(
        self,
        operand_count_min: int = 2,
        operand_count_max: int = 4,
        max_value: int = 20,
        operators: Sequence[str] = SUPPORTED_OPERATORS,
        bracket_probability: float = 0.5,
        upper_bound: int = 1000,
        max_attempts: int = 10000,
        rng: Optional[random.Random] = None,
    ):
        if operand_count_min < 1 or operand_count_min > operand_count_max:
            raise ValueError("operand counts must satisfy 1 <= min <= max")
        if max_value < 1:
            raise ValueError("max_value must be at least 1")
        if not operators:
            raise ValueError("at least one operator is required")
        unsupported = [op for op in operators if op not in SUPPORTED_OPERATORS]
        if unsupported:
            raise ValueError(f"unsupported operators: {unsupported}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.operand_count_min = operand_count_min
        self.operand_count_max = operand_count_max
        self.max_value = max_value
        self.operators = tuple(operators)
        self.bracket_probability = bracket_probability
        self.upper_bound = upper_bound
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    def sample_expression(self) -> str:
        count = self.rng.randint(self.operand_count_min, self.operand_count_max)
        parts = [str(self.rng.randint(1, self.max_value))]
        for _ in range(count - 1):
            parts.append(self.rng.choice(self.operators))
            parts.append(str(self.rng.randint(1, self.max_value)))
        expression = " ".join(parts)
        if self.rng.random() < self.bracket_probability:
            expression = "(" + expression + ")"
        return expression

    def accepts(self, result: Fraction) -> bool:
        return result.denominator == 1 and 0 <= result < self.upper_bound

    def generate(self) -> Challenge:
        for _ in range(self.max_attempts):
            expression = self.sample_expression()
            try:
                result = evaluate_expression(expression)
            except (ZeroDivisionError, InvalidExpression):
                continue
            if self.accepts(result):
                return Challenge(format_question(expression), str(result.numerator))
        raise GenerationExhausted(self.max_attempts)


class ExpertChallengeGenerator(ChallengeGenerator):
    mode = 'expert'

    def __init__(
        self,
        operand_count_min: int = 3,
        operand_count_max: int = 5,
        max_value: int = 99,
        rng: Optional[random.Random] = None,
    ):
        if operand_count_min < 1 or operand_count_min > operand_count_max:
            raise ValueError("operand counts must satisfy 1 <= min <= max")
        if max_value < 1:
            raise ValueError("max_value must be at least 1")
        self.operand_count_min = operand_count_min
        self.operand_count_max = operand_count_max
        self.max_value = max_value
        self.rng = rng or random.Random()

    def generate(self) -> Challenge:
        count = self.rng.randint(self.operand_count_min, self.operand_count_max)
        operands = [self.rng.randint(1, self.max_value) for _ in range(count)]
        expression = " + ".join(str(n) for n in operands)
        return Challenge(format_question(expression), str(sum(operands)))


GENERATORS = {
    AdvancedChallengeGenerator.mode: AdvancedChallengeGenerator,
    ExpertChallengeGenerator.mode: ExpertChallengeGenerator,
}


def get_generator(mode: str = 'advanced', **params) -> ChallengeGenerator:
    try:
        cls = GENERATORS[mode]
    except KeyError:
        raise ValueError(f"Unknown challenge mode: {mode!r}") from None
    return cls(**params)
