# modules/cli.py
import argparse
import os
import sys
from typing import Dict, List

from modules.check import NodeType
from modules.controls import Controls

DEFAULT_CONFIG_DIR = "cfg"
DEFAULT_BENCHMARK_VERSION = "cis-1.3"
DEFAULT_LEVEL = "1"
NODE_TYPES = [node_type.value for node_type in NodeType]


# ──────────────────────────────────────────────────────────────────────────────
# Утилиты печати из каталога (их импортирует cisbench/main.py)
# ──────────────────────────────────────────────────────────────────────────────
def list_groups(controls: Controls) -> None:
    """Печатает группы каталога в исходном порядке."""
    for group in controls.catalog:
        print(f"{group.id}: {group.text} ({len(group.checks)} checks)")


def list_checks(controls: Controls, group_id: str | None = None) -> None:
    """Печатает список проверок, опционально только одной группы."""
    for group in controls.catalog:
        if group_id and group.id != group_id:
            continue
        for check in group.checks:
            kind = f" [{check.type}]" if check.type else ""
            print(f"{check.id}: {check.text} (level {check.level}){kind}")


def describe_check(controls: Controls, check_id: str) -> bool:
    """Печатает подробную информацию по конкретной проверке по ID."""
    check = controls.find_check(check_id)
    if check is None:
        print(f"Check ID '{check_id}' not found in the catalog.")
        return False
    print(f"ID: {check.id}")
    print(f"Text: {check.text}")
    print(f"Level: {check.level}")
    print(f"Type: {check.type or 'automated'}")
    print(f"Scored: {check.scored}")
    print(f"Audit: {check.audit}")
    for index, argv in enumerate(check.commands, start=1):
        print(f"  stage {index}: {argv}")
    print(f"Remediation: {check.remediation}")
    return True


def parse_id_list(raw: List[str] | None) -> List[str]:
    """Разбирает значения вида ``1.1,1.2`` (флаг можно повторять)."""
    ids: List[str] = []
    for item in raw or []:
        ids.extend(part.strip() for part in item.split(",") if part.strip())
    return ids


def parse_kv_pairs(raw: List[str] | None, *, option: str) -> Dict[str, str]:
    """Парсит список KEY=VALUE в словарь."""

    if not raw:
        return {}

    parsed: Dict[str, str] = {}
    for item in raw:
        if "=" not in item:
            raise ValueError(
                f"Неверный формат {option}: '{item}'. Используйте KEY=VALUE."
            )
        key, value = item.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            raise ValueError(f"Неверный ключ в {option}: '{item}'")
        parsed[key] = value
    return parsed


# ──────────────────────────────────────────────────────────────────────────────
# Парсинг аргументов
# ──────────────────────────────────────────────────────────────────────────────
def _add_node_type_argument(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "node_type",
        choices=NODE_TYPES,
        help="Тип узла, для которого загружается каталог проверок.",
    )


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """
    Разбирает аргументы командной строки:
      cisbench run master --group 1.1,1.2 --level 2
      cisbench --catalog cfg/cis-1.3/node.yaml run node --check 2.1.1 --json
    """

    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="cisbench",
        description="cisbench: запуск проверок CIS-бенчмарка и сводный отчёт.",
    )
    parser.add_argument(
        "--config-dir",
        default=os.environ.get("CISBENCH_CONFIG_DIR", DEFAULT_CONFIG_DIR),
        help="Каталог с бенчмарками (можно задать через CISBENCH_CONFIG_DIR).",
    )
    parser.add_argument(
        "--benchmark-version",
        dest="benchmark_version",
        default=os.environ.get("CISBENCH_VERSION", DEFAULT_BENCHMARK_VERSION),
        help="Версия бенчмарка, подкаталог config-dir (можно задать через CISBENCH_VERSION).",
    )
    parser.add_argument(
        "--catalog",
        help="Явный путь к YAML-каталогу (вместо <config-dir>/<version>/<node_type>.yaml).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный вывод.")
    parser.add_argument("--log-file", help="Дублировать сообщения в файл.")

    subs = parser.add_subparsers(dest="command", required=False, help="Доступные команды")

    sub_run = subs.add_parser("run", help="Запустить проверки")
    _add_node_type_argument(sub_run)
    selection = sub_run.add_mutually_exclusive_group()
    selection.add_argument(
        "--group",
        action="append",
        metavar="ID[,ID...]",
        help="Запустить только указанные группы (можно указывать несколько раз).",
    )
    selection.add_argument(
        "--check",
        action="append",
        metavar="ID[,ID...]",
        help="Запустить только указанные проверки (без фильтра по уровню).",
    )
    sub_run.add_argument(
        "--level",
        default=os.environ.get("CISBENCH_LEVEL", DEFAULT_LEVEL),
        help="Уровень CIS; проверки более высокого уровня пропускаются (CISBENCH_LEVEL).",
    )
    sub_run.add_argument(
        "--var",
        action="append",
        metavar="KEY=VALUE",
        help="Подстановка $KEY в командах аудита (можно указывать несколько раз).",
    )
    sub_run.add_argument("--json", action="store_true", help="Печатать отчёт в JSON.")
    sub_run.add_argument("--output", metavar="FILE", help="Сохранить JSON-отчёт в файл.")
    sub_run.add_argument(
        "--fail-on",
        choices=["none", "warn", "fail"],
        default="none",
        help="Код возврата 2, если есть результаты не лучше указанного. По умолчанию: none.",
    )
    sub_run.add_argument(
        "--no-remediation",
        action="store_true",
        help="Не печатать рекомендации по исправлению.",
    )

    sub_groups = subs.add_parser("list-groups", help="Показать группы каталога")
    _add_node_type_argument(sub_groups)

    sub_checks = subs.add_parser("list-checks", help="Показать проверки")
    _add_node_type_argument(sub_checks)
    sub_checks.add_argument("--group", help="Только проверки группы")

    sub_desc = subs.add_parser("describe-check", help="Детали проверки по ID")
    _add_node_type_argument(sub_desc)
    sub_desc.add_argument("check_id", help="ID проверки")

    sub_val = subs.add_parser("validate", help="Проверить каталог на ошибки")
    _add_node_type_argument(sub_val)
    sub_val.add_argument(
        "--strict",
        action="store_true",
        help="Строгий режим: код возврата 2 вместо 1 при ошибках",
    )

    args = parser.parse_args(argv)

    if getattr(args, "command", None) is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "run":
        try:
            args.vars = parse_kv_pairs(getattr(args, "var", None), option="--var")
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            sys.exit(2)
        delattr(args, "var")
        args.groups = parse_id_list(args.group)
        args.checks = parse_id_list(args.check)
        delattr(args, "group")
        delattr(args, "check")
    return args
