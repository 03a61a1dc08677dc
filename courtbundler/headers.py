HEADERS = ("Document", "Date", "Page(s)")
