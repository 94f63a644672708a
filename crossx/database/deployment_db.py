"""
Database operations for publication and deployment tracking
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from crossx.models import DeploymentState, DeploymentTransaction

# Configure SQLite to handle datetime properly for Python 3.12+
sqlite3.register_adapter(datetime, lambda dt: dt.isoformat())
sqlite3.register_converter("timestamp", lambda b: datetime.fromisoformat(b.decode()))


class DeploymentDatabase:
    """Handles all database operations for the deployment system"""

    def __init__(self, db_path: str = 'deployments.db'):
        """Initialize database connection"""
        self.db_path = db_path
        self.logger = logging.getLogger('crossx')
        self._setup_database()

    def _connect(self):
        return sqlite3.connect(self.db_path, detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES)

    def _setup_database(self):
        """Setup SQLite database for tracking deployments"""
        with self._connect() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS deployments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    origin_tx_hash TEXT UNIQUE,
                    session_id TEXT,
                    intent_id TEXT,
                    salt TEXT,
                    predicted_address TEXT,
                    destinations TEXT,
                    domains TEXT,
                    fees TEXT,
                    total_fee TEXT,
                    status TEXT DEFAULT 'pending',
                    error_kind TEXT,
                    submitted_at TIMESTAMP,
                    confirmed_at TIMESTAMP
                )
            ''')

            conn.execute('''
                CREATE TABLE IF NOT EXISTS publications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content_id TEXT UNIQUE,
                    contract_name TEXT,
                    link TEXT,
                    published_at TIMESTAMP
                )
            ''')

            conn.execute('CREATE INDEX IF NOT EXISTS idx_deployments_status ON deployments(status)')

    def record_submission(self, session_id: str, transaction: DeploymentTransaction) -> None:
        """Save an accepted origin transaction"""
        intent = transaction.intent
        with self._connect() as conn:
            # uint256 amounts don't fit in SQLite integers, store as text
            conn.execute('''
                INSERT OR REPLACE INTO deployments
                (origin_tx_hash, session_id, intent_id, salt, predicted_address,
                 destinations, domains, fees, total_fee, status, submitted_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                transaction.origin_tx_hash, session_id, intent.intent_id, str(intent.salt),
                intent.predicted_address, json.dumps(list(intent.destinations)),
                json.dumps(list(intent.domains)), json.dumps([str(f) for f in intent.fees]),
                str(intent.total_fee), transaction.status.value, transaction.submitted_at
            ))
        self.logger.debug(f"Recorded deployment {transaction.origin_tx_hash}")

    def update_status(self, origin_tx_hash: str, status: DeploymentState,
                      error_kind: Optional[str] = None, confirmed_at: Optional[datetime] = None) -> None:
        """Update deployment status in database"""
        with self._connect() as conn:
            conn.execute('''
                UPDATE deployments
                SET status = ?, error_kind = ?, confirmed_at = COALESCE(?, confirmed_at)
                WHERE origin_tx_hash = ?
            ''', (status.value, error_kind, confirmed_at, origin_tx_hash))

    def _row_to_dict(self, row) -> Dict:
        return {
            'origin_tx_hash': row[0],
            'session_id': row[1],
            'salt': int(row[2]),
            'predicted_address': row[3],
            'destinations': json.loads(row[4]),
            'domains': json.loads(row[5]),
            'fees': [int(f) for f in json.loads(row[6])],
            'total_fee': int(row[7]),
            'status': row[8],
            'error_kind': row[9],
            'submitted_at': row[10],
            'confirmed_at': row[11],
        }

    _COLUMNS = '''origin_tx_hash, session_id, salt, predicted_address, destinations,
                  domains, fees, total_fee, status, error_kind, submitted_at, confirmed_at'''

    def get_deployment(self, origin_tx_hash: str) -> Optional[Dict]:
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {self._COLUMNS} FROM deployments WHERE LOWER(origin_tx_hash) = LOWER(?)",
                (origin_tx_hash,)
            )
            row = cursor.fetchone()
        return self._row_to_dict(row) if row else None

    def get_pending_deployments(self) -> List[Dict]:
        """Deployments whose origin tx has not been confirmed yet"""
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {self._COLUMNS} FROM deployments WHERE status = ? ORDER BY submitted_at",
                (DeploymentState.PENDING.value,)
            )
            rows = cursor.fetchall()
        return [self._row_to_dict(row) for row in rows]

    def record_publication(self, content_id: str, contract_name: str, link: str) -> None:
        with self._connect() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO publications (content_id, contract_name, link, published_at)
                VALUES (?, ?, ?, ?)
            ''', (content_id, contract_name, link, datetime.now()))

    def get_publication(self, content_id: str) -> Optional[Dict]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT content_id, contract_name, link, published_at FROM publications WHERE content_id = ?",
                (content_id,)
            )
            row = cursor.fetchone()
        if not row:
            return None
        return {
            'content_id': row[0],
            'contract_name': row[1],
            'link': row[2],
            'published_at': row[3],
        }

    def get_deployment_stats(self) -> Dict:
        """Get deployment statistics"""
        with self._connect() as conn:
            cursor = conn.execute('''
                SELECT
                    COUNT(*) as total,
                    SUM(CASE WHEN status = 'succeeded' THEN 1 ELSE 0 END) as succeeded,
                    SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
                    SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) as pending
                FROM deployments
            ''')
            stats = cursor.fetchone()
            publications = conn.execute("SELECT COUNT(*) FROM publications").fetchone()[0]

        return {
            'total_deployments': stats[0],
            'succeeded': stats[1] or 0,
            'failed': stats[2] or 0,
            'pending': stats[3] or 0,
            'publications': publications,
        }
