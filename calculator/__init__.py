"""Text math-expression evaluator with dice rolling."""
