"""
Release Planning Request Generator

Generates a realistic next-release planning request: features with skills,
priorities and dependencies, and a team of employees to do them.
Skill coverage is checked so the request is solvable.

Run: python scripts/generate_data.py [--features 40] [--employees 8] [--seed 42]
"""

import argparse
import json
import os
import random
from collections import Counter
from typing import Dict, List

# Configuration
NUM_FEATURES = 40
NUM_EMPLOYEES = 8
NB_WEEKS = 3
HOURS_PER_WEEK = 40
SKILLS = [
    "Backend",
    "Frontend",
    "Database",
    "DevOps",
    "Security",
    "Mobile",
    "Data Engineering",
    "QA Automation",
]
FEATURE_AREAS = [
    "Login", "Checkout", "Search", "Reports", "Notifications", "Billing",
    "Dashboard", "Export", "Import", "Audit Log", "Settings", "Onboarding",
    "Permissions", "Analytics", "Payments", "Profile",
]
FEATURE_ACTIONS = ["Redesign", "API", "Migration", "Hardening", "Caching", "Revamp", "Integration", "Cleanup"]
FIRST_NAMES = [
    "Alice", "Bruno", "Chen", "Dana", "Emeka", "Farah", "Goran", "Hana",
    "Ines", "Jonas", "Kemal", "Lena", "Mateo", "Nadia", "Omar", "Priya",
]


def generate_employees(count: int, rng: random.Random) -> List[Dict]:
    """Generate employees; every skill is covered by at least two people"""
    employees = []
    names = rng.sample(FIRST_NAMES, k=min(count, len(FIRST_NAMES)))
    while len(names) < count:
        names.append(f"{rng.choice(FIRST_NAMES)} {len(names) + 1}")

    for name in names:
        # Full-time or part-time over the whole horizon
        weekly_hours = rng.choice([40, 40, 40, 32, 20])
        skills = rng.sample(SKILLS, k=rng.randint(1, 3))
        employees.append({
            "name": name,
            "availability": weekly_hours * NB_WEEKS,
            "skills": [{"name": s} for s in sorted(skills)],
        })

    # Fill coverage gaps
    for skill in SKILLS:
        holders = [e for e in employees if any(s["name"] == skill for s in e["skills"])]
        while len(holders) < min(2, len(employees)):
            candidate = rng.choice([e for e in employees if e not in holders])
            candidate["skills"].append({"name": skill})
            candidate["skills"].sort(key=lambda s: s["name"])
            holders.append(candidate)

    return employees


def generate_features(count: int, rng: random.Random) -> List[Dict]:
    """Generate features; dependencies only point backwards so the request is acyclic"""
    features = []
    used = set()
    for i in range(count):
        name = f"{rng.choice(FEATURE_AREAS)} {rng.choice(FEATURE_ACTIONS)}"
        while name in used:
            name = f"{name} {i}"
        used.add(name)

        depends_on = []
        if features and rng.random() < 0.3:
            for previous in rng.sample(features, k=min(len(features), rng.randint(1, 2))):
                depends_on.append({"name": previous["name"]})

        features.append({
            "name": name,
            "duration": rng.choice([2, 4, 4, 6, 8, 8, 12, 16]),
            "priority": {"level": rng.choices([1, 2, 3, 4, 5], weights=[10, 20, 35, 20, 15])[0]},
            "required_skills": [{"name": s} for s in sorted(rng.sample(SKILLS, k=rng.randint(0, 2)))],
            "depends_on": depends_on,
        })
    return features


def print_summary(request: Dict):
    """Print statistics and a feasibility check of the generated request"""
    features = request["features"]
    employees = request["resources"]

    print("\n" + "=" * 60)
    print("DATA GENERATION SUMMARY")
    print("=" * 60)

    print(f"\nFeatures: {len(features)}")
    priorities = Counter(f["priority"]["level"] for f in features)
    for level in sorted(priorities):
        print(f"  Priority {level}: {priorities[level]}")
    print(f"  With dependencies: {sum(1 for f in features if f['depends_on'])}")

    work = sum(f["duration"] for f in features)
    horizon = request["nbWeeks"] * request["hoursPerWeek"]
    capacity = sum(min(e["availability"], horizon) for e in employees)
    print(f"\nEmployees: {len(employees)}")
    print(f"  Total work: {work}h")
    print(f"  Total capacity: {capacity}h")
    ratio = capacity / work if work else 0
    print(f"  Capacity ratio: {ratio:.2f}x")
    if ratio < 1.0:
        print("  WARNING: Not every feature can fit in this release")

    print("\n" + "=" * 60)
    print("FEASIBILITY CHECK")
    print("=" * 60)
    available = {s["name"] for e in employees for s in e["skills"]}
    missing = sorted({s["name"] for f in features for s in f["required_skills"]} - available)
    if missing:
        print("  PROBLEM: Features need skills that NO employee has:")
        for skill in missing:
            print(f"    - {skill}")
    else:
        print("  All feature skill requirements can be met")


def main():
    parser = argparse.ArgumentParser(description="Generate a release planning request")
    parser.add_argument("--features", type=int, default=NUM_FEATURES)
    parser.add_argument("--employees", type=int, default=NUM_EMPLOYEES)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("-o", "--output", default=os.path.join("data", "request.json"))
    args = parser.parse_args()

    rng = random.Random(args.seed)
    print("Generating release planning request...")
    request = {
        "features": generate_features(args.features, rng),
        "resources": generate_employees(args.employees, rng),
        "nbWeeks": NB_WEEKS,
        "hoursPerWeek": HOURS_PER_WEEK,
    }

    directory = os.path.dirname(args.output)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(args.output, "w") as f:
        json.dump(request, f, indent=2)

    print_summary(request)
    print(f"\nRequest written to {args.output}")
    print(f"Plan it with: python -m release_planner {args.output} -o data/response.json")


if __name__ == "__main__":
    main()
