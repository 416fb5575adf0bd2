"""
I/O utilities.

Roster CSV loading and arrangement/result export to CSV and JSON.
"""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional, Union

from .models import AttributeValue, OptimizationResult, Participant, Roster

CONFIDENCE_SUFFIX = "_confidence"


def load_roster_csv(csv_path: Union[str, Path]) -> List[Participant]:
    """
    Load participants from a CSV file.

    CSV format:
        id,name,gender,organization,location,title,...
        p1,Ada Lovelace,female,Analytical Engines,"London, UK",Engineer
        ...

    Every column other than id and name becomes an attribute. A column
    named ``<attribute>_confidence`` sets that attribute's confidence.
    Empty cells are treated as missing values.

    Args:
        csv_path: Path to CSV file

    Returns:
        List of participants in file order

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        ValueError: If CSV format is invalid
    """
    csv_path = Path(csv_path)

    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    participants = []
    with open(csv_path, 'r', newline='') as f:
        reader = csv.DictReader(f)

        if not reader.fieldnames or 'id' not in reader.fieldnames:
            raise ValueError(f"Invalid CSV format in {csv_path}. Expected an 'id' column")

        attribute_columns = [
            col for col in reader.fieldnames
            if col not in ('id', 'name') and not col.endswith(CONFIDENCE_SUFFIX)
        ]

        for line_number, row in enumerate(reader, start=2):
            participant_id = (row.get('id') or '').strip()
            if not participant_id:
                raise ValueError(f"Missing id on line {line_number} of {csv_path}")

            attributes = {}
            for column in attribute_columns:
                value = (row.get(column) or '').strip()
                if not value:
                    continue
                confidence_text = (row.get(column + CONFIDENCE_SUFFIX) or '').strip()
                try:
                    confidence = float(confidence_text) if confidence_text else 1.0
                except ValueError:
                    raise ValueError(
                        f"Invalid confidence '{confidence_text}' for {column} on line {line_number}"
                    )
                attributes[column] = AttributeValue(value, confidence)

            participants.append(Participant(
                id=participant_id,
                name=(row.get('name') or '').strip(),
                attributes=attributes
            ))

    return participants


def save_arrangement_csv(
    assignment: Dict[int, List[Hashable]],
    roster: Roster,
    output_path: Union[str, Path]
) -> Path:
    """
    Write an arrangement as table,seat,participant_id,name rows.

    Args:
        assignment: Mapping table id -> participant ids
        roster: Roster used to look up names
        output_path: Path for output CSV

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['table', 'seat', 'participant_id', 'name'])
        for table_id in sorted(assignment):
            for seat, participant_id in enumerate(assignment[table_id], start=1):
                name = roster[roster.index_of(participant_id)].name if participant_id in roster else ''
                writer.writerow([table_id, seat, participant_id, name])

    return output_path


def save_result_json(
    result: Union[OptimizationResult, Dict[str, Any]],
    output_path: Union[str, Path],
    metadata: Optional[Dict[str, Any]] = None
) -> Path:
    """
    Write a result (anything with to_dict(), or a plain dict) as JSON.

    Args:
        result: OptimizationResult, MultiDayResult or dictionary
        output_path: Path for output JSON
        metadata: Extra metadata stored under 'metadata'

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = result.to_dict() if hasattr(result, 'to_dict') else dict(result)
    payload['metadata'] = {
        'generated_at': datetime.now().isoformat(),
        **(metadata or {})
    }

    with open(output_path, 'w') as f:
        json.dump(payload, f, indent=2, default=str)

    return output_path
