"""Simple CSV import of spots and export of links.

The spots file needs the columns 'id', 'frame', 'x' and 'y'. The columns 'z' and 'radius' are optional. All other
columns are read as numeric features, like the intensity. Empty cells in feature columns are skipped.

The links file has the columns 'track_id', 'source_id', 'target_id', 'link_type' and 'cost'."""
import csv
from typing import List

from spot_tracker.core import UserError
from spot_tracker.core.spot import Spot
from spot_tracker.core.spot_collection import SpotCollection
from spot_tracker.core.track_graph import TrackGraph

_REQUIRED_COLUMNS = ["id", "frame", "x", "y"]
_OPTIONAL_COLUMNS = ["z", "radius"]


def _parse_float(value: str, column: str, line_number: int) -> float:
    try:
        return float(value)
    except ValueError:
        raise UserError("Invalid number", f"Found \"{value}\" in column '{column}' on line {line_number}, but expected"
                                          f" a number.")


def load_spots_from_csv(file_name: str) -> SpotCollection:
    """Loads all spots from the given CSV file. Raises UserError if the file is not in the expected format."""
    spots = SpotCollection()
    with open(file_name, newline="", encoding="UTF-8") as handle:
        reader = csv.reader(handle)
        try:
            headers = [header.strip() for header in next(reader)]
        except StopIteration:
            raise UserError("Empty file", f"The file {file_name} is empty.")

        for column in _REQUIRED_COLUMNS:
            if column not in headers:
                raise UserError("Missing columns", "The CSV file should contain columns named '"
                                + "', '".join(_REQUIRED_COLUMNS) + "', but contains only '" + "', '".join(headers)
                                + "'.")
        feature_columns: List[str] = [header for header in headers
                                      if header not in _REQUIRED_COLUMNS and header not in _OPTIONAL_COLUMNS
                                      and header != ""]

        for line_number, row in enumerate(reader, start=2):
            if len(row) == 0:
                continue
            if len(row) < len(headers):
                raise UserError("Invalid line", f"Line {line_number} has too few values: expected {len(headers)},"
                                                f" got {len(row)}.")
            values = dict(zip(headers, row))
            features = dict()
            for column in feature_columns:
                value = values.get(column, "").strip()
                if len(value) > 0:
                    features[column] = _parse_float(value, column, line_number)

            frame = _parse_float(values["frame"], "frame", line_number)
            if int(frame) != frame or frame < 0:
                raise UserError("Invalid frame", f"The frame on line {line_number} must be a non-negative integer,"
                                                 f" but was {values['frame']}.")
            spot = Spot(int(_parse_float(values["id"], "id", line_number)), int(frame),
                        _parse_float(values["x"], "x", line_number), _parse_float(values["y"], "y", line_number),
                        _parse_float(values["z"], "z", line_number) if values.get("z") else 0,
                        radius=_parse_float(values["radius"], "radius", line_number) if values.get("radius") else 1,
                        features=features)
            try:
                spots.add(spot)
            except ValueError as e:
                raise UserError("Duplicate spot", f"Error on line {line_number}: {e}")
    return spots


def save_links_to_csv(graph: TrackGraph, file_name: str):
    """Saves all links of all tracks to a CSV file, ordered by track."""
    with open(file_name, "w", newline="", encoding="UTF-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["track_id", "source_id", "target_id", "link_type", "cost"])
        for track_id in graph.find_all_track_ids():
            for link in graph.get_track_links(track_id):
                writer.writerow([track_id, link.source_id, link.target_id, str(link.link_type), link.cost])
