"""Named rules generated from the build matrix.

Every `BuildTarget` is turned into a set of rules named after the kernel
series, variant and debug suffix, e.g. `build_5.4.x`, `push_perf_5.4.x` or
`show-tag_5.4.x-dbg`. Umbrella rules (`build`, `forcebuild`, `push`,
`forcepush`, `show-tags`) depend on the per-tuple rules in matrix order.
zfs rules are only reachable by name.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial
import logging

from . import actions
from .actions import BuildContext
from .matrix import BuildTarget, SideImage, kernel_versions

__all__ = [
    "Rule",
    "make_rules",
    "UMBRELLA_RULES",
]

_LOGGER = logging.getLogger(__name__)

BUILD = "build"
FORCEBUILD = "forcebuild"
PUSH = "push"
FORCEPUSH = "forcepush"
SHOW_TAGS = "show-tags"
SHOW_TAG = "show-tag"
KCONFIG = "kconfig"

UMBRELLA_RULES = (BUILD, FORCEBUILD, PUSH, FORCEPUSH, SHOW_TAGS)

# Side images included in the umbrella rules.
AGGREGATED_SIDE_IMAGES = (SideImage.PERF, SideImage.BCC)

# Side images that also get forced build and push rules.
FORCED_SIDE_IMAGES = (SideImage.PERF, SideImage.BCC)


Action = Callable[[], Awaitable[None]]


@dataclass
class Rule:
    """A named step with the rules it depends on."""

    name: str
    """Name used to request the rule."""

    deps: list[str] = field(default_factory=list)
    """Rules that must succeed before this rule runs."""

    action: Action | None = None
    """Step to run, or None for rules that only group dependencies."""

    guard: Callable[[], None] | None = None
    """Check run before any dependency, raising to refuse the rule."""


def rule_name(
    prefix: str, target: BuildTarget, side: SideImage | None = None
) -> str:
    """Return the rule name for a target e.g. build_perf_5.4.x."""
    if side is not None:
        return f"{prefix}_{side.value}_{target.name}"
    return f"{prefix}_{target.name}"


def _kernel_rules(ctx: BuildContext, target: BuildTarget) -> list[Rule]:
    kernel = target.kernel
    ref = ctx.image(kernel)
    build = rule_name(BUILD, target)
    forcebuild = rule_name(FORCEBUILD, target)
    return [
        Rule(build, action=partial(actions.build_kernel, ctx, kernel)),
        Rule(forcebuild, action=partial(actions.build_kernel, ctx, kernel, True)),
        Rule(
            rule_name(PUSH, target),
            deps=[build],
            action=partial(actions.push_image, ctx, ref),
            guard=ctx.check_publish,
        ),
        Rule(
            rule_name(FORCEPUSH, target),
            deps=[forcebuild],
            action=partial(actions.push_image, ctx, ref, True),
            guard=ctx.check_publish,
        ),
        Rule(
            rule_name(SHOW_TAG, target),
            action=partial(actions.show_tag, ctx, kernel),
        ),
    ]


def _side_image_rules(
    ctx: BuildContext, target: BuildTarget, side: SideImage
) -> list[Rule]:
    kernel = target.kernel
    ref = ctx.image(kernel, side)
    kernel_build = rule_name(BUILD, target)
    build = rule_name(BUILD, target, side)
    rules = [
        Rule(
            build,
            deps=[kernel_build],
            action=partial(actions.build_side_image, ctx, kernel, side),
        ),
        Rule(
            rule_name(PUSH, target, side),
            deps=[build],
            action=partial(actions.push_image, ctx, ref),
            guard=ctx.check_publish,
        ),
    ]
    if side in FORCED_SIDE_IMAGES:
        forcebuild = rule_name(FORCEBUILD, target, side)
        rules.extend(
            [
                # Forcing a side image does not force the kernel it is built from.
                Rule(
                    forcebuild,
                    deps=[kernel_build],
                    action=partial(actions.build_side_image, ctx, kernel, side, True),
                ),
                Rule(
                    rule_name(FORCEPUSH, target, side),
                    deps=[forcebuild],
                    action=partial(actions.push_image, ctx, ref, True),
                    guard=ctx.check_publish,
                ),
            ]
        )
    return rules


def make_rules(ctx: BuildContext, targets: list[BuildTarget]) -> dict[str, Rule]:
    """Return all rules for the build targets, keyed by name."""
    umbrella: dict[str, list[str]] = {name: [] for name in UMBRELLA_RULES}
    rules: list[Rule] = []
    for target in targets:
        rules.extend(_kernel_rules(ctx, target))
        umbrella[BUILD].append(rule_name(BUILD, target))
        umbrella[FORCEBUILD].append(rule_name(FORCEBUILD, target))
        umbrella[PUSH].append(rule_name(PUSH, target))
        umbrella[FORCEPUSH].append(rule_name(FORCEPUSH, target))
        umbrella[SHOW_TAGS].append(rule_name(SHOW_TAG, target))
        for side in target.side_images:
            rules.extend(_side_image_rules(ctx, target, side))
            if side not in AGGREGATED_SIDE_IMAGES:
                continue
            for prefix in (BUILD, FORCEBUILD, PUSH, FORCEPUSH):
                umbrella[prefix].append(rule_name(prefix, target, side))

    for name, deps in umbrella.items():
        guard = ctx.check_publish if name in (PUSH, FORCEPUSH) else None
        rules.append(Rule(name, deps=deps, guard=guard))
    rules.append(
        Rule(
            KCONFIG,
            action=partial(actions.build_kconfig, ctx, kernel_versions(targets)),
        )
    )
    result = {rule.name: rule for rule in rules}
    _LOGGER.debug("Generated %d rules for %d targets", len(result), len(targets))
    return result
