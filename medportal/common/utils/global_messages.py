class GlobalMessages:
    # Auth Messages
    INVALID_CREDENTIALS = "Invalid email or password."
    TOKEN_INVALID = "Could not validate credentials. Please log in again."
    ACCOUNT_ALREADY_EXISTS = "An account with these details already exists."
    ACCOUNT_CREATED = "Account created successfully."
    LOGIN_SUCCESS = "Login successful."
    ROLE_MISMATCH = "Access denied. This account is for {role}s. Please use the {role} login form."
    NO_PROFILE = "No portal profile exists for this account."

    # Access Messages
    UNAUTHORIZED = "You are not allowed to perform this action."
    PERMISSION_DENIED = "Your role does not grant the '{permission}' permission."

    # Record Messages
    USER_NOT_FOUND = "User not found."
    APPOINTMENT_NOT_FOUND = "Appointment not found."
    PRESCRIPTION_NOT_FOUND = "Prescription not found."
    HISTORY_ITEM_NOT_FOUND = "Medical history item not found."
    INVALID_TRANSITION = "Cannot change appointment status from '{current}' to '{target}'."
    APPOINTMENT_NOT_SCHEDULED = "Only scheduled appointments can be changed."
    REQUIRED_FIELD = "'{field}' is required."

    # Store Messages
    STORE_UNAVAILABLE = "The data store could not complete the request."
    MALFORMED_RECORD = "A stored record could not be read."
    PARTIAL_WRITE = "Medical history was only partially saved; the two stored copies may differ."

    # Assistant Messages
    ASSISTANT_NOT_CONFIGURED = "Text-completion API key not configured. Set GEMINI_API_KEY in settings."
    ASSISTANT_BAD_RESPONSE = "Invalid response format from the text-completion service."
