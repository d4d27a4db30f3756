# Counter logic, the envelope encryption walkthrough and the errors they raise.
# Nothing in here knows about HTTP.
