"""Reading spots from files and writing tracking results to files. The tracker itself doesn't depend on any file
format."""
