"""
quartertable: quarter timetable workbooks from lecture calendar exports.
"""
