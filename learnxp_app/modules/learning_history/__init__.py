"""
Learning history module: the append-only event log.

SessionRecord and AnswerRecord rows are the source of truth every
aggregate is rebuilt from.
"""
