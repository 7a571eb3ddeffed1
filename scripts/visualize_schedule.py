"""
Release Plan Visualization Tool

Creates visual representations of planning responses: a text Gantt chart
per employee and, optionally, an HTML timeline.
Run: python scripts/visualize_schedule.py <response.json> [--html]
"""

import html
import json
import os
import sys
from collections import defaultdict

HOURS_PER_COLUMN = 2


def load_jobs(response_file: str):
    with open(response_file, 'r') as f:
        data = json.load(f)

    by_employee = defaultdict(list)
    for job in data.get('jobs', []):
        by_employee[job['resource']['name']].append(job)
    for jobs in by_employee.values():
        jobs.sort(key=lambda j: j['beginHour'])
    return data, by_employee


def visualize_schedule_text(response_file: str, output_file: str = None) -> str:
    """Create a text-based Gantt chart of the plan"""
    data, by_employee = load_jobs(response_file)
    makespan = max((j['endHour'] for jobs in by_employee.values() for j in jobs), default=0)
    columns = int(makespan // HOURS_PER_COLUMN) + 1

    output = []
    output.append("=" * 100)
    output.append("RELEASE PLAN")
    output.append(f"Status: {data.get('status', 'n/a')}    Score: {data.get('score', 'n/a')}")
    output.append("=" * 100)

    width = max((len(name) for name in by_employee), default=8)
    for employee in sorted(by_employee):
        row = [" "] * columns
        for index, job in enumerate(by_employee[employee]):
            mark = "#" if job.get('frozen') else chr(ord('a') + index % 26)
            for col in range(int(job['beginHour'] // HOURS_PER_COLUMN), int(job['endHour'] // HOURS_PER_COLUMN)):
                row[col] = mark
        output.append(f"{employee:<{width}} |{''.join(row)}|")

    output.append("")
    output.append(f"One column = {HOURS_PER_COLUMN}h, '#' = frozen")

    for employee in sorted(by_employee):
        output.append(f"\n{employee}:")
        for job in by_employee[employee]:
            flag = " [frozen]" if job.get('frozen') else ""
            output.append(
                f"  {job['beginHour']:>6g} - {job['endHour']:<6g} {job['feature']['name']} "
                f"(priority {job['feature']['priority']['level']}){flag}"
            )

    output.append("\n" + "=" * 100)
    output.append("SUMMARY STATISTICS")
    output.append("=" * 100)
    total = sum(len(jobs) for jobs in by_employee.values())
    output.append(f"Planned features: {total}")
    output.append(f"Makespan: {makespan:g}h")
    for employee in sorted(by_employee):
        hours = sum(j['endHour'] - j['beginHour'] for j in by_employee[employee])
        output.append(f"  {employee}: {hours:g}h")

    result = "\n".join(output)
    print(result)

    if output_file:
        with open(output_file, 'w') as f:
            f.write(result)
        print(f"\nVisualization saved to: {output_file}")

    return result


def create_html_visualization(response_file: str, output_file: str = "plan_visualization.html") -> str:
    """Create an HTML timeline with one lane per employee"""
    data, by_employee = load_jobs(response_file)
    makespan = max((j['endHour'] for jobs in by_employee.values() for j in jobs), default=1) or 1

    lanes = []
    for employee in sorted(by_employee):
        bars = []
        for job in by_employee[employee]:
            left = job['beginHour'] / makespan * 100
            width = (job['endHour'] - job['beginHour']) / makespan * 100
            css = "bar frozen" if job.get('frozen') else f"bar p{job['feature']['priority']['level']}"
            title = html.escape(f"{job['feature']['name']} [{job['beginHour']:g}, {job['endHour']:g})")
            bars.append(
                f'<div class="{css}" style="left:{left:.2f}%;width:{width:.2f}%" title="{title}">'
                f'{html.escape(job["feature"]["name"])}</div>'
            )
        lanes.append(
            f'<div class="lane"><div class="name">{html.escape(employee)}</div>'
            f'<div class="track">{"".join(bars)}</div></div>'
        )

    page = f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Release Plan</title>
<style>
body {{ font-family: sans-serif; margin: 20px; }}
.lane {{ display: flex; align-items: center; margin: 4px 0; }}
.name {{ width: 160px; font-weight: bold; }}
.track {{ position: relative; flex: 1; height: 28px; background: #f2f2f2; }}
.bar {{ position: absolute; top: 2px; height: 24px; overflow: hidden; font-size: 11px; color: white;
        border-radius: 3px; padding-left: 3px; white-space: nowrap; }}
.p1 {{ background: #c0392b; }} .p2 {{ background: #e67e22; }} .p3 {{ background: #2980b9; }}
.p4 {{ background: #16a085; }} .p5 {{ background: #7f8c8d; }}
.frozen {{ background: #34495e; border: 2px dashed #ecf0f1; }}
</style>
</head>
<body>
<h1>Release Plan</h1>
<p>Status: {html.escape(str(data.get('status')))} &middot; Score: {html.escape(str(data.get('score')))}
&middot; Makespan: {makespan:g}h</p>
{"".join(lanes)}
</body>
</html>
"""

    with open(output_file, 'w') as f:
        f.write(page)
    print(f"\nHTML visualization saved to: {output_file}")
    return page


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/visualize_schedule.py <response.json> [--html]")
        sys.exit(1)

    response_file = sys.argv[1]

    if not os.path.exists(response_file):
        print(f"Error: File not found: {response_file}")
        sys.exit(1)

    os.makedirs("visualizations", exist_ok=True)

    name = os.path.splitext(os.path.basename(response_file))[0]
    visualize_schedule_text(response_file, f"visualizations/{name}_plan.txt")

    if '--html' in sys.argv:
        create_html_visualization(response_file, f"visualizations/{name}_plan.html")


if __name__ == "__main__":
    main()
