"""Log lifecycle, SQLite storage of parsed fabric data, and its service layer."""