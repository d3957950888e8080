"""Some base classes. Quick overview: Spots (usually cells or particles, but may also be artifacts) are detected in
frames, and stored in a SpotCollection. The linking code connects the spots of different frames, and the result is
stored as a TrackGraph."""


class UserError(Exception):
    """Used for errors that are not the fault of the programmer, but of the user."""

    title: str
    body: str

    def __init__(self, title: str, message: str):
        super().__init__(title + "\n" + message)
        self.title = title
        self.body = message
