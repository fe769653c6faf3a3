"""
Extraction Module - HTML to domain records.
===========================================

- parser: selectors and extraction rules for the SPOT student pages

Pipeline flow:
    HTML → PortalParser → User / Course / DetailCourse / TopicDetail
"""

from spotifier.extraction.parser import (
    PortalParser,
    PortalSelectors,
    parse_course_detail,
    parse_courses,
    parse_portal_datetime,
    parse_topic_detail,
    parse_user,
)

__all__ = [
    "PortalParser",
    "PortalSelectors",
    "parse_user",
    "parse_courses",
    "parse_course_detail",
    "parse_topic_detail",
    "parse_portal_datetime",
]
