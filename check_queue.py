import sqlite3
import sys
from pathlib import Path

db_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.home() / ".interview_monitor" / "queue.db"

if not db_path.exists():
    print(f"[ERROR] Queue database not found at: {db_path}")
    sys.exit(1)

print(f"[OK] Found queue database at: {db_path}")
print()

conn = sqlite3.connect(str(db_path))
cursor = conn.cursor()

cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='delivery_queue'")
if not cursor.fetchone():
    print("[ERROR] delivery_queue table does not exist!")
    sys.exit(1)

# Latest writes first
cursor.execute(
    "SELECT id, operation, session_id, status, attempts, created_at, last_error "
    "FROM delivery_queue ORDER BY id DESC LIMIT 20"
)
rows = cursor.fetchall()

if not rows:
    print("[WARNING] Queue is EMPTY - no session writes have been queued")
else:
    print(f"[INFO] Last {len(rows)} queued writes:\n")
    print(f"{'ID':<6} {'Operation':<12} {'Session':<42} {'Status':<10} {'Tries':<6} {'Created':<27} {'Error'}")
    print("-" * 130)
    for item_id, operation, session_id, status, attempts, created_at, error in rows:
        print(f"{item_id:<6} {operation:<12} {session_id:<42} {status:<10} {attempts:<6} {created_at:<27} {(error or '')[:40]}")

print("\n[INFO] Status Summary:")
cursor.execute("SELECT status, COUNT(*) FROM delivery_queue GROUP BY status")
for status, count in cursor.fetchall():
    print(f"  {status}: {count}")

cursor.execute("SELECT COUNT(DISTINCT session_id) FROM delivery_queue WHERE status != 'success'")
print(f"\n[INFO] Sessions with undelivered writes: {cursor.fetchone()[0]}")

conn.close()
