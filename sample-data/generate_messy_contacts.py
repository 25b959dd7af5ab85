#!/usr/bin/env python3
"""
generate_messy_contacts.py

Generates sample-data/messy_contacts.csv: a small contact export with the
problems csv-cleaner is built for (stray whitespace, duplicates, blanks,
mixed date/number/boolean spellings, a row with an extra field and a row
cut short).

Run: python sample-data/generate_messy_contacts.py
"""

from pathlib import Path

OUT = Path(__file__).parent / "messy_contacts.csv"

lines = []

lines.append(b"Name,Email,Signup Date,Amount,Active\n")

# Row 0: baseline; "yes" is a boolean synonym
lines.append(b"Ada Lovelace,ada@example.com,2023-01-15,120.50,yes\n")

# Row 1: same as row 0 once whitespace is trimmed and collapsed
lines.append(b"  Ada   Lovelace ,ada@example.com,2023-01-15,120.50,yes\n")

# Row 2: trailing space in email; DD/MM/YYYY date; quoted amount with $ and comma
lines.append(b'Grace Hopper,GRACE@EXAMPLE.COM ,15/03/2023,"$1,200.00",no\n')

# Row 3: blank email; impossible date; non-numeric amount
lines.append(b"Alan Turing,,2023-02-30,abc,true\n")

# Row 4: email without a top-level domain; written-out month; "1" for true
lines.append(b"Katherine Johnson,katherine@example,March 5 2023,99,1\n")

# Row 5: quoted name containing the delimiter
lines.append(b'"Hopper, Grace",grace@example.com,2023-04-01,10,false\n')

# Row 6: exact repeat of row 3
lines.append(b"Alan Turing,,2023-02-30,abc,true\n")

# Row 7: European decimal amount; upper-case boolean; one field too many
lines.append(b'Margaret Hamilton,margaret@example.com,2023-05-20,"1.234,56",TRUE,extra\n')

# Row 8: export cut off after the date
lines.append(b"Edsger Dijkstra,edsger@example.com,2023-06-01\n")

with open(OUT, "wb") as f:
    f.writelines(lines)

print(f"Generated: {OUT}")
print(f"Total byte size: {OUT.stat().st_size:,} bytes")
