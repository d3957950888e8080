"""
This is the package of the spot tracker, which links detected spots over time into tracks.

To link a set of spots, use:

>>>    from spot_tracker.linking import tracker
>>>    from spot_tracker.linking.settings import TrackingSettings
>>>    result = tracker.track(spots, TrackingSettings())
>>>    if result.is_success():
>>>        print(result.graph.track_count())

Head over to the :class:`spot_tracker.core.spot_collection.SpotCollection` class to see how the input data is
structured, and to :class:`spot_tracker.core.track_graph.TrackGraph` for the output.
"""
