# WORKFLOW: ETL (Extract, Transform, Load) package for the GAR address-registry feed.
# Used by: Conversion API, download API, CLI
# Modules include:
# 1. download.py - Download the published ZIP archive with retries
# 2. ingest_zip.py - Extract the archive, download-save-extract workflow
# 3. schema_resolver.py - Resolve record-type column layouts from XSD files
# 4. xml_to_csv.py - Stream one XML file into a delimited CSV file
# 5. convert_directory.py - Convert a whole extracted directory, collect outcomes
# 6. errors.py - Exception hierarchy shared by the steps above
#
# ETL flow: ZIP URL -> Download -> Extract XML -> Resolve XSD -> Stream to CSV -> Downstream loaders

"""
ETL package for GAR feed download, extraction and XML to CSV conversion.
"""
