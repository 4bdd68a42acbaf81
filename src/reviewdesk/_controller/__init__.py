"""Internal building blocks of :class:`reviewdesk.controller.ReviewQueueController`."""
