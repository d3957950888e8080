#!/usr/bin/env python3

"""Creates tracks from a CSV file of detected spots. The settings are read from the configuration file in the current
folder; if a setting is missing, a default value is written to that file."""
import logging

from spot_tracker.config import ConfigFile, config_type_csv_file, config_type_bool
from spot_tracker.core import UserError
from spot_tracker.imaging import csv_io
from spot_tracker.linking import tracker
from spot_tracker.linking.settings import TrackingSettings
from spot_tracker.linking_analysis.track_statistics import get_all_track_statistics

# PARAMETERS
print("Hi! Configuration file is stored at " + ConfigFile.FILE_NAME)
config = ConfigFile("create_tracks")
_spots_file = config.get_or_prompt("spots_file", "Please paste the path here to the CSV file with the spots. It"
                                   " needs at least the columns id, frame, x and y.", store_in_defaults=True,
                                   type=config_type_csv_file)
_settings = TrackingSettings.from_config(config)
_output_file = config.get_or_default("output_file", "Tracks.csv", type=config_type_csv_file,
                                     comment="CSV file to which all links are written.")
_verbose = config.get_or_default("verbose", "False", type=config_type_bool,
                                 comment="Set to True to print more details of the tracking process.")
config.save()
# END OF PARAMETERS

logging.basicConfig(level=logging.DEBUG if _verbose else logging.WARNING,
                    format="%(asctime)s %(levelname)s %(name)s: %(message)s")

print("Loading spots...")
try:
    _spots = csv_io.load_spots_from_csv(_spots_file)
except UserError as e:
    print(f"{e.title}: {e.body}")
    exit(1)
except OSError as e:
    print(f"Cannot read {_spots_file}: {e}")
    exit(1)

print(f"Tracking {len(_spots)} spots...")
_result = tracker.track(_spots, _settings, show_progress=True)
for line in _result.log:
    print(line)
if not _result.is_success():
    print("Tracking failed: " + str(_result.error_message))
    exit(1)

_statistics = get_all_track_statistics(_result.graph)
if len(_statistics) > 0:
    print(f"Longest track spans {max(stats.duration for stats in _statistics.values())} frames.")
print("Saving links...")
csv_io.save_links_to_csv(_result.graph, _output_file)
print("Done! Links are saved to " + _output_file)
