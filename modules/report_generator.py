from pathlib import Path

from modules.check import State
from modules.controls import Controls, Summary
from utils.logger import log_info, log_section, log_status


def _summary_line(summary: Summary) -> str:
    return (
        f"{summary.pass_} checks PASS, {summary.fail} checks FAIL, "
        f"{summary.warn} checks WARN, {summary.info} checks INFO, {summary.skip} checks SKIP"
    )


def print_controls_results(controls: Controls, *, show_remediation: bool = True):
    """Печатает результаты последнего запуска в консоль."""
    log_section(f"[{controls.id}] {controls.text} ({controls.type}, CIS level {controls.level})")

    remediations = []
    for group in controls.groups:
        log_info(f"{group.id} {group.text}")
        for check in group.checks:
            state = check.state.value if isinstance(check.state, State) else str(check.state)
            log_status(state, f"{check.id} {check.text}")
            if check.state in (State.FAIL, State.WARN) and check.remediation:
                remediations.append(f"{check.id} {check.remediation}")

    if show_remediation and remediations:
        log_section("Remediations")
        for line in remediations:
            print(line)

    log_section("Summary")
    print(_summary_line(controls.summary))
    for level, summary in controls.summary_level_wise.items():
        print(f"Level {level}: {_summary_line(summary)}")


def generate_json_report(controls: Controls, output_path: str, indent: int | None = 2):
    payload = controls.to_json(indent=indent)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(payload)
