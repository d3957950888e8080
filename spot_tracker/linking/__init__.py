"""
Linking is the process of connecting spots from different frames, so that they can be followed over time.

The tracker works in two steps. First, the spots of every pair of consecutive frames are linked (see
frame_to_frame_linker). This results in track segments without any branches. Then, the segments are connected to each
other using gap closing, splitting and merging (see segment_linker). Both steps solve a linear assignment problem
(lap_solver) over a sparse cost matrix (cost_matrix).

>>> from spot_tracker.core.spot import Spot
>>> from spot_tracker.core.spot_collection import SpotCollection
>>> from spot_tracker.linking import tracker
>>> from spot_tracker.linking.settings import TrackingSettings
>>> spots = SpotCollection([Spot(1, 0, 3, 0), Spot(2, 1, 4, 0)])
>>>
>>> # Now lets do the linking
>>> result = tracker.track(spots, TrackingSettings(max_linking_distance=5))
>>> result.graph.find_links()

"""
