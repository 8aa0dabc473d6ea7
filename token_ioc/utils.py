def singleton(cls):
    """
    A singleton decorator. Every call to the decorated class returns the same
    instance, ``__init__`` still runs on each call so it should be idempotent.
    """

    cls.__INSTANCE__ = None

    def singleton_new(singleton_cls, *args, **kwargs):
        if cls.__INSTANCE__ is None:
            # If no instance exists yet, create one
            cls.__INSTANCE__ = super(cls, cls).__new__(cls)
        # Return the single instance
        return cls.__INSTANCE__

    cls.__new__ = singleton_new

    return cls
