"""Filter chains deciding which repositories get mirrored."""

import structlog

from gitback.core.exceptions import FilterEvaluationError, FilterSyntaxError
from gitback.core.models.repository import Repository
from gitback.filters.expression import Program, Value, compile_expression

logger = structlog.get_logger(__name__)

#: Names bound (read-only) before every rule evaluation.
BINDINGS = frozenset({"owner", "member", "visibility", "size", "name"})

#: Variable a rule must assign its verdict to.
RESULT_NAME = "r"


def repository_bindings(repo: Repository) -> dict[str, Value]:
    """Values a rule can see for ``repo``."""
    return {
        "owner": repo.owner,
        "member": repo.member,
        "visibility": int(repo.visibility),
        "size": repo.size,
        "name": repo.name,
    }


class FilterRule:
    """A single compiled rule such as ``r := !owner || size > 600``."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._program: Program = compile_expression(source, readonly=BINDINGS)

    def __repr__(self) -> str:
        return f"FilterRule({self.source!r})"

    def evaluate(self, repo: Repository) -> bool:
        """Run the rule against ``repo`` and return the value of ``r``.

        Raises:
            FilterEvaluationError: the rule failed at runtime or did not
                leave a boolean in ``r``.
        """
        scope = self._program.run(repository_bindings(repo))
        if RESULT_NAME not in scope:
            raise FilterEvaluationError(
                f"rule did not assign {RESULT_NAME!r}", details={"rule": self.source}
            )
        result = scope[RESULT_NAME]
        if not isinstance(result, bool):
            raise FilterEvaluationError(
                f"rule result {RESULT_NAME!r} must be bool, got {type(result).__name__}",
                details={"rule": self.source},
            )
        return result


class FilterChain:
    """Ordered rules, AND-combined.

    An empty chain accepts every repository. Evaluation stops at the
    first rule that yields false; a rule that errors counts as false.
    """

    def __init__(self, rules: list[FilterRule] | None = None) -> None:
        self._rules = list(rules or [])

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> list[FilterRule]:
        return list(self._rules)

    def accepts(self, repo: Repository) -> bool:
        for index, rule in enumerate(self._rules):
            try:
                passed = rule.evaluate(repo)
            except FilterEvaluationError as e:
                logger.warning(
                    "Filter rule failed, rejecting repository",
                    repository=repo.name,
                    rule=index,
                    error=str(e),
                )
                return False
            if not passed:
                logger.debug("Repository filtered", repository=repo.name, rule=index)
                return False
        return True

    def apply(self, repos: list[Repository]) -> list[Repository]:
        """Return the repositories that pass, keeping their order."""
        return [repo for repo in repos if self.accepts(repo)]


def compile_filters(sources: list[str]) -> FilterChain:
    """Compile rule sources into a chain.

    Raises:
        FilterSyntaxError: naming the index of the first invalid rule.
    """
    rules = []
    for index, source in enumerate(sources):
        try:
            rules.append(FilterRule(source))
        except FilterSyntaxError as e:
            raise FilterSyntaxError(
                f"filter[{index}]: {e}", details={"rule": source, "index": index}
            ) from e
    return FilterChain(rules)
