# cisbench/main.py
from pathlib import Path
import sys

from modules.cli import (
    parse_args,
    list_groups,
    list_checks,
    describe_check,
)
from modules.controls import Summary, load_controls_file, resolve_catalog_path
from modules.report_generator import print_controls_results, generate_json_report
from modules.variables import build_substitutions
from utils.logger import configure_logging, log_debug, log_info, log_fail
from cisbench.exceptions import (
    CatalogLoadError,
    LevelParseError,
    MissingDependencyError,
    NodeTypeMismatchError,
    SerializationError,
)


def _resolve_catalog_path(args) -> Path:
    """
    Возвращает путь к каталогу проверок:
      1) если указан --catalog, используем его,
      2) иначе <config-dir>/<benchmark-version>/<node_type>.yaml.
    """
    if getattr(args, "catalog", None):
        return Path(args.catalog)
    return resolve_catalog_path(args.config_dir, args.benchmark_version, args.node_type)


def _print_and_exit_validation_errors(catalog_path: Path, errors: list[str], exit_code: int) -> None:
    print(f"Каталог '{catalog_path}' невалиден:", file=sys.stderr)
    for err in errors:
        print(f"  - {err}", file=sys.stderr)
    sys.exit(exit_code)


def _apply_exit_policy(summary: Summary, fail_on: str) -> int:
    """
    Рассчитывает код возврата процесса по политике --fail-on:
      fail: есть FAIL → код 2
      warn: есть FAIL или WARN → код 2
    """
    if fail_on == "fail" and summary.fail:
        return 2
    if fail_on == "warn" and (summary.fail or summary.warn):
        return 2
    return 0


def main():
    args = parse_args()
    # stdout carries only the JSON document with --json
    configure_logging(
        getattr(args, "log_file", None),
        verbose=getattr(args, "verbose", False),
        use_stderr=getattr(args, "json", False),
    )

    catalog_path = _resolve_catalog_path(args)
    log_debug(f"Загрузка каталога: {catalog_path}")

    try:
        controls = load_controls_file(
            catalog_path,
            args.node_type,
            getattr(args, "level", "1"),
            substitutions=build_substitutions(catalog_path, args.node_type, getattr(args, "vars", None)),
        )
    except MissingDependencyError as exc:
        log_fail(f"Отсутствует зависимость: {exc}")
        sys.exit(3)
    except FileNotFoundError:
        log_fail(f"Файл каталога не найден: {catalog_path}")
        sys.exit(1)
    except NodeTypeMismatchError as exc:
        log_fail(str(exc))
        sys.exit(1)
    except CatalogLoadError as exc:
        if args.command == "validate":
            _print_and_exit_validation_errors(catalog_path, exc.errors or [str(exc)], 2 if args.strict else 1)
        log_fail(f"Ошибка загрузки каталога: {exc}")
        sys.exit(1)

    if args.command == "validate":
        print(f"OK: каталог {controls.id} ({controls.type}) соответствует схеме.")
        return

    if args.command == "list-groups":
        list_groups(controls)
        return

    if args.command == "list-checks":
        list_checks(controls, getattr(args, "group", None))
        return

    if args.command == "describe-check":
        if not describe_check(controls, args.check_id):
            sys.exit(1)
        return

    if args.command == "run":
        try:
            if args.checks:
                summary = controls.run_checks(*args.checks)
            else:
                summary = controls.run_group(*args.groups)
        except LevelParseError as exc:
            log_fail(str(exc))
            sys.exit(1)

        try:
            if args.json:
                sys.stdout.write(controls.to_json(indent=2).decode("utf-8") + "\n")
            else:
                print_controls_results(controls, show_remediation=not args.no_remediation)

            if args.output:
                generate_json_report(controls, args.output)
                if not args.json:
                    log_info(f"Сохранен {args.output}")
        except SerializationError as exc:
            log_fail(f"Ошибка формирования отчёта: {exc}")
            sys.exit(1)
        except OSError as exc:
            log_fail(f"Ошибка записи {args.output}: {exc}")
            sys.exit(1)

        exit_code = _apply_exit_policy(summary, args.fail_on)
        if exit_code:
            sys.exit(exit_code)
        return

    log_fail(f"Неизвестная команда: {args.command}")
    sys.exit(1)


if __name__ == "__main__":
    main()
