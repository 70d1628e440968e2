"""
Student Seeder - registers students from a JSON file through the API.

The file holds a list of student objects with the same fields the
dashboard's "Add Student" form posts (id, name, grade, school, phone,
parents_phone, main_center, age). A token is minted locally with the
configured JWT secret, so run it where that secret is set.

Usage:
    python seed_students.py                                  # students.json, localhost
    python seed_students.py students.json http://localhost:8000
"""

import json
import os
import sys

import httpx

from attendance.auth import create_access_token


def main():
    data_file = sys.argv[1] if len(sys.argv) > 1 else "students.json"
    api_url = sys.argv[2] if len(sys.argv) > 2 else os.getenv("API_URL", "http://localhost:8000")

    if not os.path.exists(data_file):
        print(f"Error: Could not find {data_file}")
        sys.exit(1)

    print(f"Loading students from: {data_file}")
    with open(data_file, 'r') as f:
        students = json.load(f)

    token = create_access_token("seed-script", role="admin")
    headers = {"Authorization": f"Bearer {token}"}

    created, skipped, failed = 0, 0, 0
    with httpx.Client(base_url=api_url, headers=headers, timeout=30.0) as client:
        for student in students:
            resp = client.post("/api/students", json=student)
            if resp.status_code == 200:
                created += 1
                print(f"  ✅ {student.get('id')}: {student.get('name')}")
            elif resp.status_code == 409:
                skipped += 1
                print(f"  🔁 {student.get('id')}: already registered")
            else:
                failed += 1
                print(f"  ❌ {student.get('id')}: {resp.json().get('detail', resp.text)}")

    print("=" * 60)
    print(f"  Created: {created}   Skipped: {skipped}   Failed: {failed}")
    print("=" * 60)
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
