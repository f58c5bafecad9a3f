import dataclasses

from ..resources import describe


class Event:
    def __init_subclass__(cls, **kwargs):
        """Make subclasses available in the class namespace.
        Allows to use patterns like the following without having
        to import all the event classes.

        ```
        match type(event):
            case event.CreateEvent:
                pass
            case event.UpdateEvent:
                pass
        ```
        """
        super().__init_subclass__(**kwargs)
        setattr(Event, cls.__name__, cls)

    def __repr__(self):
        return f'<{self.__class__.__name__} {describe(self.obj)}>'


@dataclasses.dataclass(repr=False)
class CreateEvent(Event):
    obj: object


@dataclasses.dataclass(repr=False)
class UpdateEvent(Event):
    old: object
    new: object

    def __repr__(self):
        return f'<{self.__class__.__name__} {describe(self.old)} -> {describe(self.new)}>'


@dataclasses.dataclass(repr=False)
class DeleteEvent(Event):
    obj: object
