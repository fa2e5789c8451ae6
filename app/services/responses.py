"""Response bodies shared by several services."""
import os
from typing import Any, Dict, Optional


def delete_result(file_path: str, deleted: bool,
                  backup_path: Optional[str]) -> Dict[str, Any]:
    """Build the response body shared by every delete endpoint."""
    result: Dict[str, Any] = {
        'success': True,
        'message': (f"File {os.path.basename(file_path)} deleted" if deleted
                    else "File does not exist"),
        'deleted': deleted,
        'file_path': file_path,
    }
    if backup_path:
        result['backup_path'] = backup_path
    return result
