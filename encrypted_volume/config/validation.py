"""Configuration validation: structural parsing plus an exhaustive rule list.

Every rule is evaluated even when an earlier one fails, so a caller sees the
complete set of violations in one ``ConfigValidationError``. A structural error
in one input section only suppresses the rules that read that section.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Tuple

from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from encrypted_volume.config.model import (
    LOGGING_CREATE_NEW,
    LOGGING_DISABLED,
    LOGGING_USE_EXISTING,
    Config,
    KmsSpec,
    LoggingSpec,
    TagMap,
    VolumeSpec,
)
from encrypted_volume.errors import ConfigValidationError, Violation
from encrypted_volume.utils.logger import get_logger

logger = get_logger(__name__)

PREFIX_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
VOLUME_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*[A-Za-z0-9]$")
SNAPSHOT_TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")

MAX_NAME_LENGTH = 63
MIN_VOLUME_SIZE_GIB = 1
MAX_VOLUME_SIZE_GIB = 65536

VOLUME_TYPES = ("gp2", "gp3", "io1", "io2", "st1", "sc1")
IOPS_VOLUME_TYPES = frozenset({"gp3", "io1", "io2"})
THROUGHPUT_VOLUME_TYPES = frozenset({"gp3"})
IOPS_RANGES = {
    "gp3": (3000, 16000),
    "io1": (100, 64000),
    "io2": (100, 256000),
}
GP3_THROUGHPUT_RANGE = (125, 1000)

REQUIRED_TAG_KEYS = ("Environment", "Owner")

DELETION_WINDOW_RANGE = (7, 30)
LOGGING_MODES = (LOGGING_CREATE_NEW, LOGGING_USE_EXISTING, LOGGING_DISABLED)

# Values accepted by CloudWatch Logs PutRetentionPolicy.
LOG_RETENTION_DAYS = frozenset(
    {1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731, 1096, 1827, 2192, 2557, 2922, 3288, 3653}
)

SNAPSHOT_INTERVALS = frozenset({1, 2, 3, 4, 6, 8, 12, 24})
SNAPSHOT_INTERVAL_UNIT = "HOURS"
RETAIN_COUNT_RANGE = (1, 1000)

Rule = Callable[[Config], Iterable[Violation]]


def _in_range(value: int, bounds: Tuple[int, int]) -> bool:
    low, high = bounds
    return low <= value <= high


def check_prefix(config: Config) -> Iterator[Violation]:
    if config.prefix and not PREFIX_PATTERN.match(config.prefix):
        yield Violation(
            "prefix",
            "prefix_format",
            "must be empty or lowercase alphanumerics and hyphens, not starting or ending with a hyphen",
        )


def check_volume_name(config: Config) -> Iterator[Violation]:
    if not VOLUME_NAME_PATTERN.match(config.volume_name):
        yield Violation(
            "volumeName",
            "volume_name_format",
            "must be alphanumerics, '.', '_' or '-', starting and ending with an alphanumeric",
        )
    length = len(config.base_name)
    if length > MAX_NAME_LENGTH:
        yield Violation(
            "volumeName",
            "name_length",
            f"combined name '{config.base_name}' is {length} characters; the limit is {MAX_NAME_LENGTH}",
        )


def check_required_tags(config: Config) -> Iterator[Violation]:
    for key in REQUIRED_TAG_KEYS:
        if key not in config.tags:
            yield Violation("tags", "required_tag", f"missing required tag '{key}'")


def check_size(config: Config) -> Iterator[Violation]:
    size = config.volume_spec.size
    if not _in_range(size, (MIN_VOLUME_SIZE_GIB, MAX_VOLUME_SIZE_GIB)):
        yield Violation(
            "volumeSpec.size",
            "size_range",
            f"{size} GiB is outside {MIN_VOLUME_SIZE_GIB}..{MAX_VOLUME_SIZE_GIB}",
        )


def check_volume_type(config: Config) -> Iterator[Violation]:
    volume_type = config.volume_spec.volume_type
    if volume_type not in VOLUME_TYPES:
        yield Violation(
            "volumeSpec.volumeType",
            "volume_type",
            f"'{volume_type}' is not one of {', '.join(VOLUME_TYPES)}",
        )


def check_throughput(config: Config) -> Iterator[Violation]:
    spec = config.volume_spec
    if spec.volume_type == "gp3" and spec.throughput is not None:
        if not _in_range(spec.throughput, GP3_THROUGHPUT_RANGE):
            low, high = GP3_THROUGHPUT_RANGE
            yield Violation(
                "volumeSpec.throughput",
                "throughput_range",
                f"gp3 throughput {spec.throughput} MiB/s is outside {low}..{high}",
            )


def check_iops(config: Config) -> Iterator[Violation]:
    spec = config.volume_spec
    if spec.volume_type not in IOPS_VOLUME_TYPES:
        return
    if spec.iops is None:
        yield Violation("volumeSpec.iops", "iops_required", f"iops is required for {spec.volume_type} volumes")
        return
    bounds = IOPS_RANGES[spec.volume_type]
    if not _in_range(spec.iops, bounds):
        yield Violation(
            "volumeSpec.iops",
            "iops_range",
            f"{spec.volume_type} iops {spec.iops} is outside {bounds[0]}..{bounds[1]}",
        )


def check_kms(config: Config) -> Iterator[Violation]:
    kms = config.kms_spec
    if kms.create:
        if not _in_range(kms.deletion_window_days, DELETION_WINDOW_RANGE):
            low, high = DELETION_WINDOW_RANGE
            yield Violation(
                "kmsSpec.deletionWindowDays",
                "deletion_window_range",
                f"{kms.deletion_window_days} days is outside {low}..{high}",
            )
    elif kms.key_arn is None:
        yield Violation("kmsSpec.keyArn", "key_arn_required", "keyArn is required when create is false")


def check_logging(config: Config) -> Iterator[Violation]:
    logging_spec = config.logging_spec
    if logging_spec.mode not in LOGGING_MODES:
        yield Violation(
            "loggingSpec.mode",
            "logging_mode",
            f"'{logging_spec.mode}' is not one of {', '.join(LOGGING_MODES)}",
        )
    if logging_spec.mode != LOGGING_DISABLED and logging_spec.cloudtrail_bucket_name is None:
        yield Violation(
            "loggingSpec.cloudtrailBucketName",
            "cloudtrail_bucket_required",
            f"cloudtrailBucketName is required when mode is '{logging_spec.mode}'",
        )
    if logging_spec.retention_days not in LOG_RETENTION_DAYS:
        yield Violation(
            "loggingSpec.retentionDays",
            "retention_days",
            f"{logging_spec.retention_days} is not a CloudWatch Logs retention value",
        )


def check_snapshot_schedule(config: Config) -> Iterator[Violation]:
    schedule = config.volume_spec.snapshot_schedule
    field = "volumeSpec.snapshotSchedule"
    if schedule.interval_unit != SNAPSHOT_INTERVAL_UNIT:
        yield Violation(f"{field}.intervalUnit", "interval_unit", f"must be '{SNAPSHOT_INTERVAL_UNIT}'")
    if schedule.interval not in SNAPSHOT_INTERVALS:
        allowed = ", ".join(str(v) for v in sorted(SNAPSHOT_INTERVALS))
        yield Violation(f"{field}.interval", "interval", f"{schedule.interval} is not one of {allowed}")
    if len(schedule.times) != 1 or not all(SNAPSHOT_TIME_PATTERN.match(t) for t in schedule.times):
        yield Violation(f"{field}.times", "times", "must be exactly one HH:MM start time")
    if not _in_range(schedule.retain_count, RETAIN_COUNT_RANGE):
        low, high = RETAIN_COUNT_RANGE
        yield Violation(f"{field}.retainCount", "retain_count", f"{schedule.retain_count} is outside {low}..{high}")


VALIDATION_RULES: Tuple[Rule, ...] = (
    check_prefix,
    check_volume_name,
    check_required_tags,
    check_size,
    check_volume_type,
    check_throughput,
    check_iops,
    check_kms,
    check_logging,
    check_snapshot_schedule,
)

# Top-level input sections each rule reads.
RULE_SECTIONS: Dict[Rule, FrozenSet[str]] = {
    check_prefix: frozenset({"prefix"}),
    check_volume_name: frozenset({"prefix", "volumeName"}),
    check_required_tags: frozenset({"tags"}),
    check_size: frozenset({"volumeSpec"}),
    check_volume_type: frozenset({"volumeSpec"}),
    check_throughput: frozenset({"volumeSpec"}),
    check_iops: frozenset({"volumeSpec"}),
    check_kms: frozenset({"kmsSpec"}),
    check_logging: frozenset({"loggingSpec"}),
    check_snapshot_schedule: frozenset({"volumeSpec"}),
}

_SECTION_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "prefix": TypeAdapter(str).validate_python,
    "volumeName": TypeAdapter(str).validate_python,
    "tags": TypeAdapter(TagMap).validate_python,
    "volumeSpec": VolumeSpec.model_validate,
    "kmsSpec": KmsSpec.model_validate,
    "loggingSpec": LoggingSpec.model_validate,
}


def _structural_violations(exc: ValidationError) -> List[Violation]:
    violations: List[Violation] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        violations.append(Violation(field, f"structure:{error.get('type', 'invalid')}", error.get("msg", "invalid")))
    return violations


def _parse_sections(raw: Mapping[str, Any], failed: FrozenSet[str]) -> Dict[str, Any]:
    """Parse every top-level section that has no structural error of its own.

    Missing optional sections take their defaults; missing required ones and
    failed ones are left out.
    """
    parsed: Dict[str, Any] = {}
    for name, field in Config.model_fields.items():
        section = to_camel(name)
        if section in failed or name in failed:
            continue
        if section in raw:
            parsed[name] = _SECTION_PARSERS[section](raw[section])
        elif name in raw:
            parsed[name] = _SECTION_PARSERS[section](raw[name])
        elif not field.is_required():
            parsed[name] = field.get_default(call_default_factory=True)
    return parsed


def _violations_on_parsed_sections(raw: Mapping[str, Any], exc: ValidationError) -> List[Violation]:
    """Run the rules whose sections parsed despite structural errors elsewhere."""
    failed = frozenset(str(error["loc"][0]) for error in exc.errors() if error.get("loc"))
    parsed = _parse_sections(raw, failed)
    available = frozenset(to_camel(name) for name in parsed)
    partial = Config.model_construct(**parsed)

    violations: List[Violation] = []
    for rule in VALIDATION_RULES:
        if RULE_SECTIONS[rule] <= available:
            violations.extend(rule(partial))
    return violations


def collect_violations(config: Config) -> List[Violation]:
    """Evaluate every rule against an already-parsed config."""
    violations: List[Violation] = []
    for rule in VALIDATION_RULES:
        violations.extend(rule(config))
    return violations


def validate(raw: Mapping[str, Any]) -> Config:
    """Parse, default and validate raw input.

    Raises:
        ConfigValidationError: with every violation found. When some sections
            are structurally invalid (wrong types, missing or unknown keys), the
            rules over the remaining sections still run and their violations
            are reported alongside the structural ones.
    """
    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        violations = _structural_violations(exc)
        if isinstance(raw, Mapping):
            violations.extend(_violations_on_parsed_sections(raw, exc))
        logger.warning(
            "Configuration failed structural validation",
            extra={"violation_count": len(violations)},
        )
        raise ConfigValidationError(violations) from exc

    violations = collect_violations(config)
    if violations:
        logger.warning(
            "Configuration failed %d rule(s)",
            len(violations),
            extra={"violation_count": len(violations)},
        )
        raise ConfigValidationError(violations)
    return config
